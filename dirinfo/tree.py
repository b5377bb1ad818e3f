"""
tree.py -- Dokumente als Feldfolgen und BEGIN/END Entity-Baeume.

Abhaengigkeiten innerhalb des Pakets:
  - config (Config)
  - errors (MismatchedBeginEndError, StructureError)
  - field (Field)
  - folding (unfold)

Ein Baum ist eine Liste, deren Eintraege entweder ein Field oder eine
verschachtelte Liste [BEGIN-Feld, ...Kinder..., END-Feld] pro BEGIN/END-Block
sind.
"""

# ============================================================
# Interne Paket-Imports
# ============================================================
from dirinfo.config import Config
from dirinfo.errors import MismatchedBeginEndError, StructureError
from dirinfo.field import Field
from dirinfo.folding import unfold


def parse_fields(text: str, config: Config | None = None) -> list[Field]:
    """Entfaltet text und dekodiert ein Field pro logischer Zeile."""
    config = config or Config()
    return [Field.decode(line, config) for line in unfold(text)]


def expand(fields) -> list:
    """
    Verschachtelt eine flache Feldfolge in ihre BEGIN/END Entities.

    Wirft MismatchedBeginEndError, wenn ein Block mit einem anderen Wert
    geschlossen wird als geoeffnet, und StructureError fuer END ohne BEGIN
    oder BEGIN ohne END. Ein Teilbaum wird nie zurueckgegeben.
    """
    root: list = []
    # Stack der offenen Bloecke, root ganz unten
    stack = [root]

    for f in fields:
        if f.is_name("BEGIN"):
            block = [f]
            stack[-1].append(block)
            stack.append(block)
        elif f.is_name("END"):
            if len(stack) == 1:
                raise StructureError(f"END:{f.value_raw} without matching BEGIN")
            block = stack.pop()
            block.append(f)
            begin = block[0]
            if not begin.has_value(f.value_raw or ""):
                raise MismatchedBeginEndError(begin.value_raw, f.value_raw)
        else:
            stack[-1].append(f)

    if len(stack) > 1:
        unclosed = ", ".join(block[0].value_raw for block in stack[1:])
        raise StructureError(f"BEGIN without matching END ({unclosed})")

    return root


def outer_inner(level) -> tuple[list, list]:
    """
    Teilt eine Baumebene in (Felder, Bloecke): die Felder direkt auf dieser
    Ebene und die verschachtelten BEGIN/END-Bloecke, jeweils in Originalreihenfolge.
    """
    outer = []
    inner = []
    for entry in level:
        if isinstance(entry, list):
            inner.append(entry)
        else:
            outer.append(entry)
    return outer, inner


def _walk(entries):
    for entry in entries:
        if isinstance(entry, list):
            yield from _walk(entry)
        else:
            yield entry


def encode_fields(entries, width: int | None = None, newline: str | None = None,
                  config: Config | None = None) -> str:
    """
    Kodiert eine Feldfolge oder einen Baum (depth first) zurueck in Text.
    width/newline fallen auf config.fold_width/config.newline zurueck.
    """
    config = config or Config()
    width = config.fold_width if width is None else width
    newline = config.newline if newline is None else newline
    return "".join(f.encode(width, newline) for f in _walk(entries))
