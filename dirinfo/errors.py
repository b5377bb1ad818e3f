"""
errors.py – Exception-Hierarchie des Directory-Info Codecs.

Dieses Modul ist ein Blattmodul ohne interne Paket-Abhaengigkeiten.
Alle Fehler des Codecs erben von DirInfoError, damit Aufrufer die ganze
Familie mit einer except-Klausel abfangen koennen.
"""


class DirInfoError(Exception):
    """Basisklasse aller Codec-Fehler."""


class InvalidEncodingError(DirInfoError, ValueError):
    """Rohtext passt nicht zur Zeilengrammatik, oder ein Wert ist nicht dekodierbar."""

    def __init__(self, message: str, line: str | None = None, column: int = 0) -> None:
        self.line = line
        self.column = column
        if line is not None and column:
            message = f"{message} (col {column} in {line!r})"
        elif line is not None:
            message = f"{message} ({line!r})"
        super().__init__(message)


class UnencodeableError(DirInfoError, ValueError):
    """Ein Wert oder Feld laesst sich nicht in gueltig kodierten Text umsetzen."""


class StructureError(DirInfoError):
    """BEGIN/END-Felder sind nicht korrekt verschachtelt."""


class MismatchedBeginEndError(StructureError):
    """Ein Block wurde mit einem BEGIN-Wert geoeffnet und mit einem anderen END-Wert geschlossen."""

    def __init__(self, begin: str, end: str) -> None:
        self.begin = begin
        self.end = end
        super().__init__(f"Mismatch between BEGIN and END fields: ({begin!r} != {end!r})")


class UnsupportedError(DirInfoError):
    """Ein bekanntes Merkmal des Formats, das nicht implementiert ist."""


class FrozenFieldError(DirInfoError):
    """Ein dekodiertes Feld wurde veraendert; vorher Field.copy() verwenden."""
