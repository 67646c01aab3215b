"""Build parameters and their process-boundary encoding.

Configs never read ``os.environ`` directly. Each build task carries a frozen
:class:`BuildEnvironment`; it is serialized to ``BUILD_*`` variables only
when a child process (rollup, babel, jest...) needs to see it.

Values stored in the environment are strings. :func:`env_get` reads them
back, decoding JSON where possible so objects, arrays and booleans survive
the round trip::

    BUILD_GLOBALS='{"react":"React"}'  ->  {"react": "React"}
    BUILD_MINIFY=true                  ->  True
    BUILD_NAME=MyLib                   ->  "MyLib"
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

ENV_PREFIX = "BUILD_"
ENV_VERSION_KEY = "BUILD_ENV_VERSION"
ENV_VERSION = "1"

_MISSING = ("", "undefined")


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(name)


def env_get(key: str, default: Any = None, environ: Mapping[str, str] | None = None) -> Any:
    """Return the decoded value of *key*, or *default* when unset."""
    source = os.environ if environ is None else environ
    raw = source.get(key)
    if raw is None or raw in _MISSING:
        return default
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return raw


def _split_top_level(text: str, sep: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for ch in text:
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def parse_environment_option(option: str | None) -> dict[str, str]:
    """Parse ``--environment KEY:value,OTHER:{"a":1}`` into raw strings.

    A pair without a colon is a flag and maps to ``"true"``.
    """
    pairs: dict[str, str] = {}
    if not option:
        return pairs
    for chunk in _split_top_level(option, ","):
        chunk = chunk.strip()
        if not chunk:
            continue
        key, sep, value = chunk.partition(":")
        pairs[key.strip()] = value if sep else "true"
    return pairs


def _encode(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


@dataclass(frozen=True)
class BuildEnvironment:
    """Every parameter a built-in config may branch on.

    ``extra`` carries ``--environment`` pairs that no built-in config knows
    about; they are forwarded to child processes as-is.
    """

    format: str | None = None
    minify: bool = False
    watch: bool = False
    typescript: bool = False
    sourcemap: bool = False
    bundler: bool = False
    treeshake: bool | None = None
    test: bool = False
    input: str = "src/index.ts"
    output: str = "dist"
    node_env: str | None = None
    alias: dict[str, str] | None = None
    external: tuple[str, ...] | None = None
    globals: dict[str, str] | None = None
    name: str | None = None
    filename_prefix: str = ""
    filename_suffix: str = ""
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def tree_shaking(self) -> bool:
        return self.bundler if self.treeshake is None else self.treeshake

    @property
    def is_umd(self) -> bool:
        return self.format == "umd"

    @property
    def is_cjs(self) -> bool:
        return self.format == "cjs"

    @property
    def is_esm(self) -> bool:
        return self.format == "esm"

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, str] | None = None,
    ) -> BuildEnvironment:
        """Seed parameters from inherited variables, then ``--environment`` overrides."""
        merged: dict[str, str] = {}
        source = os.environ if environ is None else environ
        merged.update({k: v for k, v in source.items() if k.startswith(ENV_PREFIX)})
        for key in ("NODE_ENV", "BABEL_ENV"):
            if key in source:
                merged[key] = source[key]
        merged.update(overrides or {})

        def get(key: str, default: Any = None) -> Any:
            return env_get(key, default, merged)

        external = get("BUILD_EXTERNAL")
        node_env = get("NODE_ENV")
        babel_env = get("BABEL_ENV")
        name = get("BUILD_NAME")
        known = {
            "BUILD_FORMAT", "BUILD_MINIFY", "BUILD_WATCHMODE", "BUILD_TS",
            "BUILD_SOURCEMAP", "BUILD_ROLLUP", "BUILD_WEBPACK", "BUILD_TREESHAKE", "BUILD_INPUT",
            "BUILD_OUTPUT", "BUILD_ALIAS", "BUILD_EXTERNAL", "BUILD_GLOBALS",
            "BUILD_NAME", "BUILD_FILENAME_PREFIX", "BUILD_FILENAME_SUFFIX",
            ENV_VERSION_KEY, "NODE_ENV", "BABEL_ENV",
        }
        return cls(
            format=get("BUILD_FORMAT"),
            minify=bool(get("BUILD_MINIFY", False)),
            watch=bool(get("BUILD_WATCHMODE", False)),
            typescript=bool(get("BUILD_TS", False)),
            sourcemap=bool(get("BUILD_SOURCEMAP", False)),
            bundler=bool(get("BUILD_ROLLUP", False) or get("BUILD_WEBPACK", False)),
            treeshake=get("BUILD_TREESHAKE"),
            test=(babel_env or node_env) == "test",
            input=str(get("BUILD_INPUT", "src/index.ts")),
            output=str(get("BUILD_OUTPUT", "dist")),
            node_env=None if node_env is None else str(node_env),
            alias=get("BUILD_ALIAS"),
            external=None if external is None else tuple(external),
            globals=get("BUILD_GLOBALS"),
            name=None if name is None else str(name),
            filename_prefix=str(get("BUILD_FILENAME_PREFIX", "")),
            filename_suffix=str(get("BUILD_FILENAME_SUFFIX", "")),
            extra={k: v for k, v in merged.items() if k not in known},
        )

    def with_task(
        self,
        *,
        format: str,
        minify: bool,
        watch: bool,
        typescript: bool,
        input: str,
        output: str,
    ) -> BuildEnvironment:
        """Return a copy fixed to one bundle task."""
        return replace(
            self,
            format=format,
            minify=minify,
            watch=watch,
            typescript=typescript,
            sourcemap=format == "umd",
            bundler=True,
            input=input,
            output=output,
            node_env="production" if minify else "development",
        )

    def to_environ(self) -> dict[str, str]:
        """Encode for a child process. Unset optional values are omitted."""
        values: dict[str, Any] = {
            ENV_VERSION_KEY: ENV_VERSION,
            "BUILD_INPUT": self.input,
            "BUILD_OUTPUT": self.output,
            "BUILD_FORMAT": self.format,
            "BUILD_ROLLUP": self.bundler or None,
            "BUILD_WATCHMODE": self.watch or None,
            "BUILD_MINIFY": self.minify or None,
            "BUILD_TS": self.typescript or None,
            "BUILD_SOURCEMAP": self.sourcemap or None,
            "BUILD_TREESHAKE": self.treeshake,
            "BUILD_ALIAS": self.alias,
            "BUILD_EXTERNAL": list(self.external) if self.external is not None else None,
            "BUILD_GLOBALS": self.globals,
            "BUILD_NAME": self.name,
            "BUILD_FILENAME_PREFIX": self.filename_prefix or None,
            "BUILD_FILENAME_SUFFIX": self.filename_suffix or None,
            "NODE_ENV": self.node_env,
        }
        if self.test:
            values["BABEL_ENV"] = "test"
        encoded = {k: _encode(v) for k, v in values.items() if v is not None}
        return {**self.extra, **encoded}
