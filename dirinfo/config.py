"""
config.py – Konfiguration und Defaults des Codecs.

Dieses Modul ist ein Blattmodul ohne interne Paket-Abhaengigkeiten.
Es definiert die Config-Dataclass, die explizit an die Decode-Einstiegspunkte
(Field.decode, parse_fields) uebergeben wird. Es gibt KEINE globale
Instanz: wer keine uebergibt, bekommt ein frisches Config() mit den Defaults
unten.
"""

# ============================================================
# Externe Abhaengigkeiten
# ============================================================
import os
from dataclasses import dataclass, asdict


# ============================================================
# Defaults
# ============================================================
def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


# Ungueltige Zeilen: InvalidEncodingError werfen (True) oder ein als
# ungueltig markiertes Field zurueckgeben (False).
RAISE_ON_INVALID_LINE = _env_flag("DIRINFO_RAISE_ON_INVALID_LINE", "1")

# RFC 2425 empfiehlt 75 Oktette pro physischer Zeile. 0 schaltet Folding ab.
DEFAULT_FOLD_WIDTH = int(os.environ.get("DIRINFO_FOLD_WIDTH", "75").strip() or "75")

# Alle relevanten RFCs wollen CRLF auf der Leitung.
DEFAULT_NEWLINE = "\r\n"

_VALID_NEWLINES = frozenset({"\r\n", "\n"})


# ============================================================
# Config Dataclass
# ============================================================
@dataclass
class Config:
    """Alle Parameter, die der Codec liest. Der Codec selbst aendert sie nie."""
    raise_on_invalid_line: bool = RAISE_ON_INVALID_LINE
    fold_width: int = DEFAULT_FOLD_WIDTH
    newline: str = DEFAULT_NEWLINE

    def __post_init__(self) -> None:
        if not isinstance(self.fold_width, int) or isinstance(self.fold_width, bool):
            raise ValueError(f"fold_width muss ein int sein, nicht {self.fold_width!r}.")
        if self.fold_width != 0 and self.fold_width < 2:
            raise ValueError(f"fold_width {self.fold_width} ist zu schmal (0 oder >= 2 erlaubt).")
        if self.newline not in _VALID_NEWLINES:
            raise ValueError(f"Ungueltiges newline {self.newline!r}: nur CRLF oder LF erlaubt.")

    def to_dict(self) -> dict:
        """Gibt ein dict zurueck, das als JSON gespeichert werden kann."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Config":
        """Erzeugt Config aus dict (fehlende Keys = Defaults, unbekannte Keys werden ignoriert)."""
        known = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in d.items() if k in known}
        return cls(**filtered)
