"""Symbol providers: where typed symbol records come from.

The scanner never analyzes source code itself. The host picks a provider:
- NullSymbolProvider: no analysis available, every scan has zero symbols
- PythonSymbolProvider: classes, functions and methods from Python sources via ast
- JsonSymbolProvider: a symbol dump exported by an external analysis server
"""

from __future__ import annotations

import ast
import json
import logging
from pathlib import Path
from typing import Protocol

from specmine.extraction.models import FileLocation, SymbolInfo, SymbolKind

logger = logging.getLogger(__name__)


class SymbolProvider(Protocol):
    def symbols_for(self, root: Path, files: list[str]) -> list[SymbolInfo]:
        """Return symbols declared in `files` (paths relative to `root`)."""
        ...


class NullSymbolProvider:
    def symbols_for(self, root: Path, files: list[str]) -> list[SymbolInfo]:
        return []


class JsonSymbolProvider:
    """Serve symbols from a JSON dump: a list of symbol records.

    Records use the SymbolInfo field names. Only symbols located in one of the
    requested files are returned.
    """

    def __init__(self, dump_path: Path) -> None:
        self._dump_path = Path(dump_path)

    def symbols_for(self, root: Path, files: list[str]) -> list[SymbolInfo]:
        data = json.loads(self._dump_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            data = data.get("symbols", [])
        if not isinstance(data, list):
            raise ValueError(f"Symbol dump {self._dump_path} is not a list of symbols")

        wanted = set(files)
        symbols: list[SymbolInfo] = []
        for record in data:
            try:
                symbol = SymbolInfo.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed symbol record in {self._dump_path}: {e}")
                continue
            if symbol.location.path in wanted:
                symbols.append(symbol)
        return symbols


class PythonSymbolProvider:
    """Extract symbols from .py files with the standard library parser."""

    def symbols_for(self, root: Path, files: list[str]) -> list[SymbolInfo]:
        symbols: list[SymbolInfo] = []
        for rel_path in files:
            if not rel_path.endswith(".py"):
                continue
            try:
                source = (root / rel_path).read_text(encoding="utf-8")
                tree = ast.parse(source, filename=rel_path)
            except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
                logger.warning(f"Could not parse {rel_path}, skipping: {e}")
                continue
            symbols.extend(_module_symbols(tree, rel_path))
        return symbols


def _module_symbols(tree: ast.Module, rel_path: str) -> list[SymbolInfo]:
    symbols: list[SymbolInfo] = []
    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            symbols.append(_symbol(node, SymbolKind.CLASS, node.name, rel_path))
            for member in node.body:
                if isinstance(member, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    symbols.append(
                        _symbol(member, SymbolKind.METHOD, f"{node.name}/{member.name}", rel_path)
                    )
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            symbols.append(_symbol(node, SymbolKind.FUNCTION, node.name, rel_path))
    return symbols


def _symbol(node: ast.AST, kind: SymbolKind, name_path: str, rel_path: str) -> SymbolInfo:
    signature = None
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
        signature = format_signature(node)
    return SymbolInfo(
        name=node.name,  # type: ignore[attr-defined]
        kind=kind,
        name_path=name_path,
        location=FileLocation(
            path=rel_path,
            start_line=node.lineno,  # type: ignore[attr-defined]
            end_line=getattr(node, "end_lineno", None) or node.lineno,  # type: ignore[attr-defined]
        ),
        signature=signature,
        documentation=ast.get_docstring(node),  # type: ignore[arg-type]
    )


def format_signature(node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
    """Render "(a: int, b: str = 'x') -> Result", leaving out self/cls."""
    args = node.args
    positional = args.posonlyargs + args.args
    defaults: list[ast.expr | None] = [None] * (len(positional) - len(args.defaults))
    defaults.extend(args.defaults)

    params: list[str] = []
    for arg, default in zip(positional, defaults):
        if arg.arg in ("self", "cls"):
            continue
        params.append(_format_arg(arg, default))
    if args.vararg:
        params.append("*" + _format_arg(args.vararg, None))
    elif args.kwonlyargs:
        params.append("*")
    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        params.append(_format_arg(arg, default))
    if args.kwarg:
        params.append("**" + _format_arg(args.kwarg, None))

    signature = f"({', '.join(params)})"
    if node.returns is not None:
        signature += f" -> {ast.unparse(node.returns)}"
    return signature


def _format_arg(arg: ast.arg, default: ast.expr | None) -> str:
    text = arg.arg
    if arg.annotation is not None:
        text += f": {ast.unparse(arg.annotation)}"
    if default is not None:
        text += f" = {ast.unparse(default)}"
    return text
