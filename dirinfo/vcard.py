"""
vcard.py -- vCard 3.0 Reader/Writer fuer Kontakt-Dateien.

Abhaengigkeiten innerhalb des Pakets:
  - codec (TEXT-Escaping)
  - config (Config)
  - errors (DirInfoError)
  - field (Field)
  - tree (parse_fields, expand, outer_inner, encode_fields)
  - utils (log, read_text, write_secure)

Bildet eine einzelne vCard auf ein flaches dict mit den Kontakt-Feldern ab:
FN, N, NICKNAME, EMAIL, TEL, ADR, ORG, TITLE, ROLE, URL,
NOTE, BDAY, UID, REV, PRODID, CATEGORIES, TZ, GEO, SORT-STRING.
Gelesen wird nur der erste VCARD-Block einer Datei; verschachtelte Bloecke
(z.B. eine AGENT-vCard) werden ignoriert.

vCard 3.0 Standard: RFC 2426
"""

# ============================================================
# Externe Abhaengigkeiten
# ============================================================
import os

# ============================================================
# Interne Paket-Imports
# ============================================================
from dirinfo import codec
from dirinfo.config import Config
from dirinfo.errors import DirInfoError
from dirinfo.field import Field
from dirinfo.tree import encode_fields, expand, outer_inner, parse_fields
from dirinfo.utils import log, read_text, write_secure


# ============================================================
# Konstanten
# ============================================================
_MULTI_VALUE_PROPS = frozenset({"TEL"})
_FOLD_LIMIT = 75
_N_PARTS = ("family", "given", "additional", "prefix", "suffix")


def empty_vcard() -> dict:
    """Kontakt-dict, in dem alle bekannten Felder leer vorhanden sind."""
    return {
        "FN": "", "N": {}, "NICKNAME": "", "EMAIL": "",
        "TEL": [], "ADR": "", "ORG": "", "TITLE": "", "ROLE": "",
        "URL": "", "NOTE": "", "BDAY": "", "UID": "", "REV": "",
        "PRODID": "", "CATEGORIES": "", "TZ": "", "GEO": "",
        "SORT-STRING": "",
    }


# ============================================================
# N-Feld
# ============================================================
def _parse_n_field(field: Field) -> dict:
    """N:Family;Given;Additional;Prefix;Suffix -> dict."""
    # Unescapte Semikolons trennen die Teile, escapte gehoeren zum Teil.
    parts = field.as_text_list(";")
    parts += [""] * (len(_N_PARTS) - len(parts))
    return dict(zip(_N_PARTS, parts))


def _serialize_n_field(n: dict) -> str:
    """dict -> N-Wert: Family;Given;Additional;Prefix;Suffix."""
    return codec.encode_text_list([n.get(k) or "" for k in _N_PARTS], ";")


# ============================================================
# Lesen
# ============================================================
def _first_vcard(tree: list) -> list | None:
    for block in outer_inner(tree)[1]:
        if block[0].has_value("VCARD"):
            return block
    return None


def parse_vcard(text: str) -> dict | None:
    """
    Dekodiert vCard-Text in ein Kontakt-dict.
    Nicht parsebare Zeilen werden uebersprungen. Gibt None zurueck, wenn
    der Text keinen VCARD-Block enthaelt.
    """
    fields = parse_fields(text, Config(raise_on_invalid_line=False))
    block = _first_vcard(expand(fields))
    if block is None:
        return None

    data = empty_vcard()
    direct, _nested = outer_inner(block[1:-1])
    for field in direct:
        if not field.valid:
            continue
        prop_name = field.name
        if prop_name == "N":
            data["N"] = _parse_n_field(field)
        elif prop_name == "CATEGORIES":
            # Kommas trennen Kategorien, daher unescaped uebernehmen
            data["CATEGORIES"] = field.value_raw
        elif prop_name in _MULTI_VALUE_PROPS:
            data[prop_name].append(field.as_text())
        elif prop_name in data:
            data[prop_name] = field.as_text()
    return data


def read_vcard(filepath: str) -> dict | None:
    """
    Liest eine vCard-Datei und gibt ein Kontakt-dict zurueck.
    Gibt None zurueck, wenn die Datei nicht existiert oder keine gueltige
    vCard ist.
    """
    if not os.path.isfile(filepath):
        return None

    try:
        text = read_text(filepath)
    except (OSError, UnicodeDecodeError) as e:
        log.debug("Could not read %s: %s", filepath, e)
        return None

    try:
        return parse_vcard(text)
    except DirInfoError as e:
        log.debug("Invalid vCard %s: %s", filepath, e)
        return None


# ============================================================
# Schreiben
# ============================================================
# Reihenfolge nach vCard-Konvention
_TEXT_PROPS_HEAD = ("PRODID", "UID")
_TEXT_PROPS_BODY = ("NICKNAME", "EMAIL")
_TEXT_PROPS_TAIL = ("ADR", "ORG", "TITLE", "ROLE", "URL", "BDAY")
_TEXT_PROPS_END = ("TZ", "GEO", "SORT-STRING", "NOTE", "REV")


def build_vcard_fields(data: dict) -> list[Field]:
    """Kontakt-dict -> Felder BEGIN:VCARD ... END:VCARD."""
    fields = [Field.create("BEGIN", "VCARD"), Field.create("VERSION", "3.0")]

    def add_text(prop):
        if data.get(prop):
            fields.append(Field.create(prop, codec.encode_text(str(data[prop]))))

    for prop in _TEXT_PROPS_HEAD:
        add_text(prop)

    # N (strukturiert)
    n = data.get("N")
    if n and isinstance(n, dict):
        fields.append(Field.create("N", _serialize_n_field(n)))

    add_text("FN")
    for prop in _TEXT_PROPS_BODY:
        add_text(prop)

    # TEL (mehrfach)
    tels = data.get("TEL") or []
    if isinstance(tels, str):
        tels = [tels] if tels else []
    for tel in tels:
        if tel:
            fields.append(Field.create("TEL", codec.encode_text(tel)))

    for prop in _TEXT_PROPS_TAIL:
        add_text(prop)

    if data.get("CATEGORIES"):
        # CATEGORIES: Kommas sind Trenner (nicht escapen)
        fields.append(Field.create("CATEGORIES", data["CATEGORIES"]))

    for prop in _TEXT_PROPS_END:
        add_text(prop)

    fields.append(Field.create("END", "VCARD"))
    return fields


def write_vcard(filepath: str, data: dict) -> None:
    """Schreibt Kontakt-dict als .vcf Datei (0o600 Permissions), gefaltet bei 75 Oktetten, CRLF."""
    text = encode_fields(build_vcard_fields(data), _FOLD_LIMIT, "\r\n")
    write_secure(filepath, text)
    log.debug("Wrote vCard %s", filepath)
