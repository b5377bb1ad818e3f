# -*- coding: utf-8 -*-
"""Tests for Field decoding, creation, typed values and mutation."""

# Standard
import datetime

# Third-Party
import pytest

# First-Party
from dirinfo.codec import Encoding
from dirinfo.config import Config
from dirinfo.errors import (
    FrozenFieldError,
    InvalidEncodingError,
    UnencodeableError,
    UnsupportedError,
)
from dirinfo.field import Field
from dirinfo.folding import unfold

UTC = datetime.timezone.utc


class TestDecode:
    def test_pieces(self):
        f = Field.decode("item1.TEL;TYPE=WORK,VOICE:+1-555-0100")
        assert f.valid
        assert f.group == "item1"
        assert f.name == "TEL"
        assert dict(f.params) == {"TYPE": ("WORK", "VOICE")}
        assert f.value == "+1-555-0100"
        assert f.line == "item1.TEL;TYPE=WORK,VOICE:+1-555-0100"

    def test_v21_and_v30_params_agree(self):
        assert dict(Field.decode("TEL;WORK;VOICE:+1-555-0100").params) == \
            dict(Field.decode("TEL;TYPE=WORK,VOICE:+1-555-0100").params)

    def test_trailing_newline_is_ignored(self):
        assert Field.decode("FN:x\r\n").line == "FN:x"
        assert Field.decode("FN:x\n").value == "x"

    def test_invalid_line_raises_by_default(self):
        with pytest.raises(InvalidEncodingError):
            Field.decode("this is not a field")

    def test_invalid_line_degrades_when_configured(self):
        f = Field.decode("this is not a field", Config(raise_on_invalid_line=False))
        assert not f.valid
        assert f.name == ""
        assert f.group == ""
        assert f.value is None
        assert f.pnames() == []
        assert not f.is_name("BEGIN")

    def test_params_are_read_only(self):
        f = Field.decode("TEL;TYPE=WORK:1")
        with pytest.raises(TypeError):
            f.params["TYPE"] = ("HOME",)
        assert isinstance(f.pvalues("TYPE"), tuple)


class TestAccessors:
    def test_name_and_group_are_case_insensitive(self):
        f = Field.decode("Home.tel:1")
        assert f.is_name("TEL")
        assert f.is_name("Tel")
        assert f.is_group("HOME")
        assert not f.is_group(None)
        assert Field.decode("TEL:1").is_group(None)

    def test_pvalue(self):
        f = Field.decode('TEL;TYPE=WORK,FAX;X-EMPTY=;X-Q="":1')
        assert f.pvalue("type") == "WORK"
        assert f["TYPE"] == ("WORK", "FAX")
        assert f.pvalues("X-EMPTY") == ()
        assert f.pvalue("X-EMPTY") is None
        assert f.pvalues("X-Q") == ("",)
        assert f.pvalue("X-Q") is None
        assert f.pvalue("X-MISSING") is None
        assert f.pvalues("X-MISSING") is None
        assert f.pnames() == ["TYPE", "X-EMPTY", "X-Q"]
        assert list(f.each_param())[0] == ("TYPE", ("WORK", "FAX"))

    def test_type_and_pref(self):
        f = Field.decode("EMAIL;TYPE=internet,pref:a@example.com")
        assert f.is_type("INTERNET")
        assert f.is_pref()
        assert not Field.decode("EMAIL;TYPE=internet:a@example.com").is_pref()
        assert not Field.decode("EMAIL:a@example.com").is_type("internet")

    def test_kind(self):
        f = Field.decode("DTSTART;VALUE=DATE:19961022")
        assert f.kind == "date"
        assert f.is_kind("DATE")
        assert Field.decode("FN:x").kind is None
        assert not Field.decode("FN:x").is_kind("text")

    def test_multi_valued_value_param_raises(self):
        with pytest.raises(InvalidEncodingError):
            Field.decode("X;VALUE=date,text:1").kind

    def test_has_value(self):
        assert Field.decode("BEGIN:vcard").has_value("VCARD")
        assert not Field.decode("BEGIN:VCARD").has_value("VEVENT")


class TestValue:
    def test_plain_encodings(self):
        assert Field.decode("NOTE;ENCODING=8BIT:abc").value == "abc"
        assert Field.decode("NOTE;7BIT:abc").params["TYPE"] == ("7BIT",)

    def test_base64(self):
        assert Field.decode("PHOTO;ENCODING=b:aGVsbG8=").value == b"hello"
        assert Field.decode("PHOTO;BASE64:aGVsbG8=").value == b"hello"

    @pytest.mark.parametrize("line", ["PHOTO;ENCODING=B:!!!!", "PHOTO;ENCODING=B:aGVs*bG8="])
    def test_malformed_base64_raises(self, line):
        with pytest.raises(InvalidEncodingError):
            Field.decode(line).value

    def test_base64_with_two_space_continuations(self):
        text = "PHOTO;BASE64:\r\n  aGVs\r\n  bG8=\r\n"
        (line,) = unfold(text)
        assert Field.decode(line).value == b"hello"

    def test_quoted_printable(self):
        text = "NOTE;ENCODING=QUOTED-PRINTABLE;CHARSET=UTF-8:caf=C3=A9 =\r\nau lait\r\n"
        (line,) = unfold(text)
        assert Field.decode(line).value == "café au lait"

    def test_quoted_printable_v21_bare_param(self):
        assert Field.decode("NOTE;QUOTED-PRINTABLE:a=3Db").value == "a=b"

    def test_quoted_printable_charset(self):
        assert Field.decode("NOTE;ENCODING=QUOTED-PRINTABLE;CHARSET=ISO-8859-1:caf=E9").value == "café"

    def test_unrecognized_encoding(self):
        with pytest.raises(InvalidEncodingError):
            Field.decode("NOTE;ENCODING=X-ROT13:abc").value

    def test_multi_valued_encoding_raises(self):
        f = Field.decode("PHOTO;ENCODING=B,QUOTED-PRINTABLE:abc")
        with pytest.raises(InvalidEncodingError):
            f.encoding
        with pytest.raises(InvalidEncodingError):
            f.value

    def test_text(self):
        f = Field.decode("NOTE:Item1\\, Item2\\nnext")
        assert f.value_raw == "Item1\\, Item2\\nnext"
        assert f.as_text() == "Item1, Item2\nnext"
        assert Field.decode("CATEGORIES:a\\,b,c").as_text_list() == ["a,b", "c"]


class TestTypedValues:
    def test_date(self):
        assert Field.decode("BDAY:19961022").as_date() == [datetime.date(1996, 10, 22)]
        assert Field.decode("BDAY:1996-10-22").as_date() == [datetime.date(1996, 10, 22)]

    def test_date_from_date_time(self):
        assert Field.decode("REV:19961022T140000Z").as_date() == [datetime.date(1996, 10, 22)]

    def test_time_from_date_time(self):
        assert Field.decode("DTSTART:19961022T140000").as_time() == [datetime.datetime(1996, 10, 22, 14, 0, 0)]
        assert Field.decode("DTSTART:1996-10-22T14:00:00Z").as_time() == \
            [datetime.datetime(1996, 10, 22, 14, 0, 0, tzinfo=UTC)]

    def test_time_with_offset(self):
        (t,) = Field.decode("DTSTART:19961022T140000+0130").as_time()
        assert t.utcoffset() == datetime.timedelta(hours=1, minutes=30)

    def test_offset_minutes_out_of_range(self):
        with pytest.raises(InvalidEncodingError):
            Field.decode("DTSTART:19961022T140000+0099").as_time()

    def test_time_from_date(self):
        assert Field.decode("BDAY:19961022").as_time() == [datetime.datetime(1996, 10, 22, tzinfo=UTC)]

    def test_multiple_values(self):
        f = Field.decode("EXDATE:19961022T140000,19961023T140000")
        assert [d.day for d in f.as_date()] == [22, 23]

    @pytest.mark.parametrize("line", [
        "BDAY:tomorrow",
        "BDAY:19961322",
        "BDAY:19961022,garbage",
        "DTSTART:19961022T250000",
    ])
    def test_invalid_dates(self, line):
        with pytest.raises(InvalidEncodingError):
            Field.decode(line).as_date() if "BDAY" in line else Field.decode(line).as_time()

    def test_as_typed(self):
        assert Field.decode("NOTE:a\\,b").as_typed() == "a,b"
        assert Field.decode("URL;VALUE=uri:http://x/a\\b").as_typed() == "http://x/a\\b"
        assert Field.decode("X-N;VALUE=INTEGER:1,-2").as_typed() == [1, -2]
        assert Field.decode("X-B;VALUE=boolean:TRUE,false").as_typed() == [True, False]
        assert Field.decode("GEO;VALUE=float:1.5").as_typed() == [1.5]
        assert Field.decode("X-T;VALUE=time:140000Z").as_typed()[0].tz == "Z"
        assert Field.decode("BDAY;VALUE=date:19961022").as_typed() == [datetime.date(1996, 10, 22)]
        assert Field.decode("PHOTO;VALUE=binary;ENCODING=b:aGVsbG8=").as_typed() == b"hello"

    def test_as_typed_unsupported_kind(self):
        with pytest.raises(UnsupportedError):
            Field.decode("X-A;VALUE=x-custom:abc").as_typed()

    def test_as_typed_invalid_boolean(self):
        with pytest.raises(InvalidEncodingError):
            Field.decode("X-B;VALUE=boolean:maybe").as_typed()


class TestCreate:
    def test_simple(self):
        f = Field.create("FN", "John Doe")
        assert f.line == "FN:John Doe"
        assert not f.frozen

    def test_params_and_group(self):
        f = Field.create("TEL", "+1-555-0100", {"TYPE": ["WORK", "VOICE"], "X-NOTE": "a;b"}, group="item1")
        assert f.line == 'item1.TEL;TYPE=WORK,VOICE;X-NOTE="a;b":+1-555-0100'
        assert f.pvalues("X-NOTE") == ("a;b",)

    def test_value_types(self):
        assert Field.create("BDAY", datetime.date(1996, 10, 22)).value == "19961022"
        assert Field.create("REV", datetime.datetime(1996, 10, 22, 14, 0, 0, tzinfo=UTC)).value == "19961022T140000Z"
        assert Field.create("N", ["Doe", "John", "", "", ""]).value == "Doe;John;;;"
        assert Field.create("X-COUNT", 3).value == "3"

    def test_base64(self):
        raw = bytes(range(256))
        f = Field.create("PHOTO", raw, {"ENCODING": Encoding.B64})
        assert f.pvalue("ENCODING") == "B"
        assert f.value == raw
        assert Field.decode(f.encode(0, "\n")).value == raw

    def test_base64_survives_folding(self):
        raw = bytes(range(256)) * 4
        f = Field.create("PHOTO", raw, {"ENCODING": Encoding.B64, "TYPE": "JPEG"})
        (line,) = unfold(f.encode(75, "\r\n"))
        assert Field.decode(line).value == raw

    def test_base64_only_for_encoding_param(self):
        with pytest.raises(UnencodeableError):
            Field.create("PHOTO", b"x", {"TYPE": Encoding.B64})

    def test_bytes_need_base64(self):
        with pytest.raises(UnencodeableError):
            Field.create("PHOTO", b"x")

    @pytest.mark.parametrize("name,value,params", [
        ("BAD NAME", "x", None),
        ("", "x", None),
        ("NOTE", "two\nlines", None),
        ("TEL", "1", {"TYPE": 'a"b'}),
        ("TEL", "1", {"BAD PARAM": "x"}),
        ("NOTE", object(), None),
    ])
    def test_unencodeable(self, name, value, params):
        with pytest.raises(UnencodeableError):
            Field.create(name, value, params)

    def test_round_trip(self):
        f = Field.create("NOTE", "a\\, b", {"TYPE": ["HOME", "x:y"], "LANGUAGE": "de"}, group="G1")
        g = Field.decode(f.encode(0, "\n"))
        assert g.group == f.group
        assert g.name == f.name
        assert dict(g.params) == dict(f.params)
        assert g.value == f.value


class TestEncode:
    def test_no_wrap(self):
        f = Field.create("NOTE", "x" * 100)
        assert f.encode(0, "\n") == "NOTE:" + "x" * 100 + "\n"

    def test_wrap(self):
        f = Field.create("NOTE", "x" * 100)
        out = f.encode(75, "\r\n")
        assert out == "NOTE:" + "x" * 70 + "\r\n " + "x" * 30 + "\r\n"
        assert unfold(out) == [f.line]

    def test_default(self):
        assert str(Field.create("FN", "x")) == "FN:x\n"

    def test_too_narrow(self):
        with pytest.raises(UnencodeableError):
            Field.create("FN", "x").encode(1)

    def test_trailing_whitespace_of_decoded_line_is_dropped(self):
        assert Field.decode("BEGIN:VCARD ").encode(0) == "BEGIN:VCARD\n"


class TestMutation:
    def test_decoded_fields_are_frozen(self):
        f = Field.decode("TEL:1")
        assert f.frozen
        with pytest.raises(FrozenFieldError):
            f.set_value("2")
        assert f.value == "1"

    def test_decoded_fields_hash_by_line(self):
        a = Field.decode("TEL;TYPE=WORK:1")
        b = Field.decode("TEL;TYPE=WORK:1")
        assert hash(a) == hash(b)
        assert len({a, b, Field.decode("TEL:2")}) == 2

    def test_mutable_fields_are_unhashable(self):
        with pytest.raises(TypeError):
            hash(Field.create("TEL", "1"))

    def test_copy_is_mutable_and_independent(self):
        f = Field.decode("TEL:1")
        g = f.copy()
        g.set_value("2")
        assert g.line == "TEL:2"
        assert f.line == "TEL:1"

    def test_set_group(self):
        f = Field.create("TEL", "1")
        f.set_group("item2")
        assert f.line == "item2.TEL:1"
        assert f.is_group("ITEM2")
        f.set_group(None)
        assert f.line == "TEL:1"
        assert f.group is None

    def test_mutation_keeps_empty_quoted_param(self):
        f = Field.decode('TEL;X-A="":1').copy()
        f.set_group("g")
        assert f.pvalues("X-A") == ("",)
        assert f.line == 'g.TEL;X-A="":1'

    def test_set_value(self):
        f = Field.create("BDAY", "19961022")
        f.set_value(datetime.date(2000, 1, 2))
        assert f.line == "BDAY:20000102"

    def test_set_text(self):
        f = Field.create("NOTE", "")
        f.set_text("a, b\nc")
        assert f.value_raw == "a\\, b\\nc"
        assert f.as_text() == "a, b\nc"

    def test_set_param(self):
        f = Field.create("TEL", "1", {"TYPE": "WORK"})
        f.set_param("type", ["HOME", "CELL"])
        assert f.line == "TEL;TYPE=HOME,CELL:1"
        f.set_param("X-LABEL", "a,b")
        assert f.pvalues("X-LABEL") == ("a,b",)

    def test_add_param_value_is_a_set(self):
        f = Field.create("TEL", "+1-555-0100", {"TYPE": "WORK"})
        assert f.add_param_value("TYPE", "work") == ("WORK",)
        assert f.line == "TEL;TYPE=WORK:+1-555-0100"
        assert f.add_param_value("type", "voice") == ("WORK", "voice")
        assert f.add_param_value("TYPE", "VOICE") == ("WORK", "voice")
        assert f.line == "TEL;TYPE=WORK,voice:+1-555-0100"

    def test_add_param_value_creates_param(self):
        f = Field.create("TEL", "1")
        f.add_param_value("TYPE", "HOME")
        assert f.line == "TEL;TYPE=HOME:1"

    def test_remove_param_value(self):
        f = Field.create("TEL", "1", {"TYPE": ["WORK", "Voice"]})
        assert f.remove_param_value("TYPE", "HOME") == ("WORK", "Voice")
        assert f.line == "TEL;TYPE=WORK,Voice:1"
        assert f.remove_param_value("TYPE", "VOICE") == ("WORK",)
        assert f.remove_param_value("TYPE", "work") == ()
        assert f.pvalues("TYPE") is None
        assert f.line == "TEL:1"

    def test_set_pref(self):
        f = Field.create("EMAIL", "a@example.com", {"TYPE": "INTERNET"})
        f.set_pref(True)
        assert f.is_pref()
        f.set_pref(True)
        assert f.pvalues("TYPE") == ("INTERNET", "PREF")
        f.set_pref(False)
        assert not f.is_pref()
        assert f.pvalues("TYPE") == ("INTERNET",)

    @pytest.mark.parametrize("mutate", [
        lambda f: f.set_value("two\nlines"),
        lambda f: f.set_group("bad group"),
        lambda f: f.set_param("TYPE", 'a"b'),
        lambda f: f.add_param_value("TYPE", 'a"b'),
        lambda f: f.set_value(object()),
    ])
    def test_failed_mutation_keeps_state(self, mutate):
        f = Field.create("TEL", "1", {"TYPE": "WORK"}, group="g")
        before = (f.line, f.group, f.name, dict(f.params), f.value)
        with pytest.raises(UnencodeableError):
            mutate(f)
        assert (f.line, f.group, f.name, dict(f.params), f.value) == before

    def test_mutation_keeps_line_and_pieces_consistent(self):
        f = Field.create("TEL", "1", {"TYPE": "WORK"})
        f.add_param_value("TYPE", "HOME")
        f.set_group("item1")
        f.set_value("2")
        assert Field.decode(f.line) == Field.decode(f.encode(0))
        assert f == Field.decode(f.line).copy()
