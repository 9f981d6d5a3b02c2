"""Source scanner and reconciler.

Walks a synchronized checkout, collects the names of every top-level
``variable`` block declared in ``*.tf`` files, and diffs the workspace's
cloud variables against them.

Parsing
-------

Each file is parsed with python-hcl2 and the resulting document is matched
against ``DECLARATION_SHAPES`` in order; the first shape that matches wins:

- ``SINGLE_BLOCK``: ``variable`` maps straight to a mapping of declarations
  (no list wrapper).  Only accepted if that value is a mapping.
- ``BLOCK_MAP``: ``variable`` is a list of ``{name: body}`` mappings, one per
  block, possibly several per file.  A document without any ``variable``
  key also matches, with no declarations.

A file that cannot be read, is not valid HCL, or matches no shape is
skipped with a warning.  It never aborts the walk.

Hidden entries (names starting with ``.``) are not descended into or read,
which keeps ``.git`` and ``.terraform`` out of the scan.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import hcl2
from loguru import logger

from tfcleanup.audit.errors import DeclarationParseError, ScanError
from tfcleanup.audit.models.enums import DeclarationShape
from tfcleanup.audit.models.workspace import Variable

DECLARATION_SUFFIX = ".tf"
HIDDEN_PREFIX = "."


@dataclass(frozen=True)
class ParsedDeclarations:
    """Variable names declared in one file and the shape they were found in."""

    shape: DeclarationShape
    keys: frozenset[str]


@dataclass(frozen=True)
class ScanResult:
    declared: frozenset[str] = frozenset()
    parsed_files: tuple[Path, ...] = ()
    skipped_files: tuple[Path, ...] = ()


@dataclass(frozen=True)
class Reconciliation:
    """Outcome of diffing one workspace's cloud variables against its source."""

    scan: ScanResult
    unlisted: list[Variable] = field(default_factory=list)

    @property
    def declared(self) -> frozenset[str]:
        return self.scan.declared


# ---------------------------------------------------------------------------
# Document shapes
# ---------------------------------------------------------------------------


def _single_block(document: Mapping[str, Any]) -> list[str] | None:
    block = document.get("variable")
    if isinstance(block, Mapping):
        return list(block)
    return None


def _block_map(document: Mapping[str, Any]) -> list[str] | None:
    blocks = document.get("variable", [])
    if not isinstance(blocks, list) or not all(isinstance(b, Mapping) for b in blocks):
        return None
    return [name for block in blocks for name in block]


DECLARATION_SHAPES: tuple[tuple[DeclarationShape, Callable[[Mapping[str, Any]], list[str] | None]], ...] = (
    (DeclarationShape.SINGLE_BLOCK, _single_block),
    (DeclarationShape.BLOCK_MAP, _block_map),
)


def _normalise_key(name: str) -> str | None:
    # Newer python-hcl2 releases keep the quotes around block labels and add
    # dunder metadata keys; neither is a variable name.
    if name.startswith("__") and name.endswith("__"):
        return None
    return name.strip('"') or None


def parse_declarations(text: str, *, source: str = "<string>") -> ParsedDeclarations:
    """Parse HCL ``text`` and extract declared variable names.

    Raises ``DeclarationParseError`` if the text is not HCL or no shape matches.
    """
    try:
        document = hcl2.loads(text)
    except Exception as exc:  # noqa: BLE001 -- lark raises a wide range of error types
        msg = f"{source} is not valid HCL: {exc}"
        raise DeclarationParseError(msg) from exc

    if not isinstance(document, Mapping):
        msg = f"{source} did not parse to a document"
        raise DeclarationParseError(msg)

    for shape, extract in DECLARATION_SHAPES:
        names = extract(document)
        if names is None:
            continue
        keys = frozenset(k for k in (_normalise_key(n) for n in names) if k is not None)
        return ParsedDeclarations(shape=shape, keys=keys)

    msg = f"{source} has a variable block in an unsupported shape"
    raise DeclarationParseError(msg)


def parse_declaration_file(path: Path) -> ParsedDeclarations:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Could not read {path}: {exc}"
        raise DeclarationParseError(msg) from exc
    return parse_declarations(text, source=str(path))


# ---------------------------------------------------------------------------
# Walk
# ---------------------------------------------------------------------------


def iter_declaration_files(root: Path) -> Iterator[Path]:
    """Yield ``*.tf`` files under ``root`` in a stable order, skipping hidden entries."""

    def _on_error(exc: OSError) -> None:
        logger.warning("Could not walk {}: {}", exc.filename, exc.strerror or exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(HIDDEN_PREFIX))
        for name in sorted(filenames):
            if name.startswith(HIDDEN_PREFIX) or Path(name).suffix != DECLARATION_SUFFIX:
                continue
            yield Path(dirpath) / name


def scan_declarations(root: Path) -> ScanResult:
    """Collect every variable name declared under ``root``.

    Raises ``ScanError`` if ``root`` is not a directory.
    """
    if not root.is_dir():
        msg = f"Source tree {root} does not exist or is not a directory"
        raise ScanError(msg)

    declared: set[str] = set()
    parsed: list[Path] = []
    skipped: list[Path] = []
    for path in iter_declaration_files(root):
        try:
            result = parse_declaration_file(path)
        except DeclarationParseError as exc:
            logger.warning("Skipping unparseable declaration file: {}", exc)
            skipped.append(path)
            continue
        logger.debug("{}: {} declarations ({})", path, len(result.keys), result.shape)
        declared |= result.keys
        parsed.append(path)

    logger.info(
        "Scanned {}: {} variables declared in {} files ({} skipped)",
        root,
        len(declared),
        len(parsed),
        len(skipped),
    )
    return ScanResult(declared=frozenset(declared), parsed_files=tuple(parsed), skipped_files=tuple(skipped))


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------


def unlisted_variables(cloud_variables: Sequence[Variable], declared: frozenset[str]) -> list[Variable]:
    """Cloud variables whose key is not declared, in cloud order."""
    return [variable for variable in cloud_variables if variable.key not in declared]


def reconcile(root: Path, cloud_variables: Sequence[Variable]) -> Reconciliation:
    """Scan ``root`` and diff ``cloud_variables`` against what it declares."""
    scan = scan_declarations(root)
    return Reconciliation(scan=scan, unlisted=unlisted_variables(cloud_variables, scan.declared))
