"""File extension to language classification."""

from __future__ import annotations

from pathlib import PurePosixPath

LANGUAGE_EXTENSIONS: dict[str, list[str]] = {
    "typescript": [".ts", ".tsx"],
    "javascript": [".js", ".jsx", ".mjs", ".cjs"],
    "python": [".py", ".pyi"],
    "java": [".java"],
    "kotlin": [".kt", ".kts"],
    "go": [".go"],
    "rust": [".rs"],
    "c": [".c", ".h"],
    "cpp": [".cpp", ".cxx", ".cc", ".hpp", ".hxx"],
    "csharp": [".cs"],
    "ruby": [".rb"],
    "php": [".php"],
    "swift": [".swift"],
    "scala": [".scala", ".sc"],
    "haskell": [".hs", ".lhs"],
    "elixir": [".ex", ".exs"],
    "clojure": [".clj", ".cljs", ".cljc"],
    "dart": [".dart"],
    "lua": [".lua"],
    "perl": [".pl", ".pm"],
    "r": [".r"],
    "julia": [".jl"],
    "ocaml": [".ml", ".mli"],
    "fsharp": [".fs", ".fsi", ".fsx"],
    "erlang": [".erl", ".hrl"],
    "zig": [".zig"],
    "nim": [".nim"],
}

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ext: language for language, exts in LANGUAGE_EXTENSIONS.items() for ext in exts
}


def extension_of(path: str) -> str:
    return PurePosixPath(path).suffix.lower()


def detect_language(path: str) -> str | None:
    return EXTENSION_TO_LANGUAGE.get(extension_of(path))


def language_distribution(files: list[str]) -> dict[str, int]:
    """Count files per detected language. Unknown extensions are left out."""
    distribution: dict[str, int] = {}
    for f in files:
        language = detect_language(f)
        if language:
            distribution[language] = distribution.get(language, 0) + 1
    return distribution
