"""
folding.py -- Line Folding / Unfolding (RFC 2425 Abschnitt 5.8.1).

Abhaengigkeiten innerhalb des Pakets:
  - errors (UnencodeableError)
  - grammar (is_unterminated_qp)

unfold() macht aus Rohtext logische Zeilen, fold() bricht eine logische
Zeile fuer die Ausgabe um.
"""

# ============================================================
# Externe Abhaengigkeiten
# ============================================================
import re

# ============================================================
# Interne Paket-Imports
# ============================================================
from dirinfo.errors import UnencodeableError
from dirinfo.grammar import is_unterminated_qp


_NEWLINE_RE = re.compile(r"\r?\n")


# ============================================================
# Unfolding
# ============================================================
def unfold(text: str) -> list[str]:
    """
    Trennt Text an CRLF oder LF und fuegt Fortsetzungszeilen zusammen.

    - Eine Zeile, die mit Leerzeichen oder Tab beginnt, setzt die vorige
      Zeile fort (das erste Zeichen entfaellt).
    - Eine vCard 2.1 quoted-printable Zeile mit Soft Break '=' am Ende
      wird mit der naechsten physischen Zeile verbunden (das '=' entfaellt).
    - Leere Zeilen werden verworfen. Das Format erlaubt sie nicht, manche
      Writer fuegen sie aber zur Lesbarkeit ein.
    """
    unfolded: list[str] = []
    prior_line = None
    for line in _NEWLINE_RE.split(text):
        if line[:1] in (" ", "\t"):
            if unfolded:
                unfolded[-1] += line[1:]
            else:
                unfolded.append(line[1:])
        elif prior_line is not None and is_unterminated_qp(prior_line):
            unfolded[-1] = prior_line[:-1] + line
        elif not line:
            continue
        else:
            unfolded.append(line)
        prior_line = unfolded[-1]
    return unfolded


# ============================================================
# Folding
# ============================================================
def _cut(encoded: bytes, limit: int) -> int:
    """Groesster Schnitt <= limit, der kein UTF-8 Multibyte-Zeichen zerteilt."""
    if len(encoded) <= limit:
        return len(encoded)
    cut = limit
    while cut > 0 and (encoded[cut] & 0xC0) == 0x80:
        cut -= 1
    if cut == 0:
        # Schon das erste Zeichen ist breiter als limit: ganz ausgeben.
        cut = 1
        while cut < len(encoded) and (encoded[cut] & 0xC0) == 0x80:
            cut += 1
    return cut


def fold(line: str, width: int = 75, newline: str = "\n") -> str:
    """
    Bricht line auf hoechstens `width` Oktette pro physischer Zeile um.

    Fortsetzungszeilen beginnen mit einem Leerzeichen, das zur Breite zaehlt.
    width=0 schaltet das Umbrechen ab, width < 2 wirft UnencodeableError.
    Das Ergebnis endet immer mit `newline`.

    Hinweis: eine bereits gefaltete Zeile wird nicht als solche erkannt,
    erneutes Falten ist nicht unbedingt byte-genau umkehrbar.
    """
    if width == 0:
        return line + newline
    if width < 2:
        raise UnencodeableError(f"{width} is too narrow")

    encoded = line.encode("utf-8")
    parts = []
    limit = width
    while True:
        cut = _cut(encoded, limit)
        parts.append(encoded[:cut].decode("utf-8"))
        encoded = encoded[cut:]
        if not encoded:
            break
        limit = width - 1
    return (newline + " ").join(parts) + newline
