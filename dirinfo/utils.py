"""
utils.py – Logging und sichere Dateioperationen.

Dieses Modul ist ein Blattmodul ohne interne Paket-Abhaengigkeiten.
Es stellt den gemeinsamen Logger und die Datei-Hilfsfunktionen bereit,
die der vCard Reader/Writer nutzt.
"""

# ============================================================
# Externe Abhaengigkeiten
# ============================================================
import os
import logging


# ============================================================
# Logging
# ============================================================
# Ziel: Im Normalbetrieb nicht zu laut.
# Wenn du mehr sehen willst: setze ENV DIRINFO_LOGLEVEL=DEBUG
LOGLEVEL = os.environ.get("DIRINFO_LOGLEVEL", "INFO").upper().strip()
logging.basicConfig(level=getattr(logging, LOGLEVEL, logging.INFO),
                    format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("dirinfo")


# ============================================================
# Hilfsfunktionen: sichere Dateibehandlung (mit Logging)
# ============================================================
def ensure_mode_0600(path: str) -> None:
    """
    Setzt best effort Dateirechte auf 0600.
    Unter Windows oder manchen Mounts kann das wirkungslos sein.
    """
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        log.debug("chmod(0600) failed for %s: %s", path, e)


def write_secure(path: str, text: str) -> None:
    """
    Ueberschreibt Datei, best effort 0600.
    Zeilenenden werden unveraendert geschrieben (keine Plattform-Umsetzung).
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    finally:
        ensure_mode_0600(path)


def read_text(path: str) -> str:
    """
    Liest eine Textdatei als UTF-8.
    - Entfernt ein UTF-8 BOM, falls vorhanden
    - Laesst CR/LF Zeilenenden unveraendert
    """
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()
