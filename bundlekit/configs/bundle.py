"""Built-in rollup config.

The config is a plain dict shaped like a rollup options object. It is written
as JSON and read back by the ES-module loader shipped next to this file
(``rollup.config.mjs``), which turns ``[name, options]`` plugin pairs into
``@rollup/plugin-<name>`` instances and ``externalPattern`` into rollup's
``external`` predicate.
"""

from __future__ import annotations

import glob
import json
import re
from pathlib import PurePosixPath
from typing import Any

from bundlekit.detect.project import Project
from bundlekit.environment import BuildEnvironment
from bundlekit.errors import InvalidOption
from bundlekit.types import ResolvedConfig

DEFAULT_FORMATS = "esm,cjs,umd,umd.min"
KNOWN_FORMATS = {"amd", "cjs", "es", "esm", "iife", "system", "umd"}
MINIFY_MARKER = "min"

EXTENSIONS = [".js", ".jsx", ".es6", ".mjs", ".cjs", ".ts", ".tsx"]

NODE_BUILTINS = [
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi", "worker_threads",
    "zlib",
]


def parse_formats(formats: str) -> list[tuple[str, str, bool]]:
    """``"esm,umd.min"`` -> ``[("esm", "esm", False), ("umd.min", "umd", True)]``."""
    parsed: list[tuple[str, str, bool]] = []
    for spec in (s.strip() for s in formats.split(",")):
        if not spec:
            continue
        name, _, marker = spec.partition(".")
        if name not in KNOWN_FORMATS:
            raise InvalidOption("--format", f"unknown output format '{name}'")
        if marker and marker != MINIFY_MARKER:
            raise InvalidOption("--format", f"unknown suffix '.{marker}' in '{spec}'")
        parsed.append((spec, name, bool(marker)))
    if not parsed:
        raise InvalidOption("--format", "no output formats given")
    return parsed


def get_watch_include(input: str | list[str]) -> list[str]:
    """Glob covering the directory of each input file.

    >>> get_watch_include("deeply/nested/index.ts")
    ['deeply/nested/**']
    >>> get_watch_include("index.ts")
    ['./**']
    """
    paths = input if isinstance(input, list) else [input]
    include = []
    for path in paths:
        parts = path.split("/")
        include.append("/".join(parts[:-1]) + "/**" if len(parts) >= 2 else "./**")
    return include


def _words(text: str) -> list[str]:
    return re.findall(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+", text)


def camel_case(text: str) -> str:
    words = _words(text)
    if not words:
        return ""
    return words[0].lower() + "".join(w.capitalize() for w in words[1:])


def default_name(project: Project) -> str:
    camel = camel_case(project.descriptor.name)
    return camel[:1].upper() + camel[1:]


def default_globals(project: Project) -> dict[str, str]:
    return {dep: camel_case(dep).capitalize() for dep in project.descriptor.peerDependencies}


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def default_external(project: Project, env: BuildEnvironment) -> list[str]:
    peers = list(project.descriptor.peerDependencies)
    if env.is_umd:
        # UMD bundles inline everything except peers
        return peers
    return list(project.descriptor.dependencies) + peers + NODE_BUILTINS


def external_pattern(names: list[str]) -> str | None:
    """Regex matching each name and its subpaths, e.g. ``react-dom/client``."""
    if not names:
        return None
    escaped = (re.sub(r"[.*+?^${}()|[\]\\]", r"\\\g<0>", name) for name in names)
    return f"^({'|'.join(escaped)})($|/)"


def is_external(config: dict[str, Any], module_id: str) -> bool:
    """Whether rollup leaves *module_id* out of the bundle.

    Listed dependencies (and their subpaths) are always external. Outside UMD,
    so is every bare import and anything under node_modules.
    """
    pattern = config.get("externalPattern")
    listed = pattern is not None and re.search(pattern, module_id) is not None
    if not config.get("externalizeBareImports"):
        return listed
    bare = not module_id.startswith(".") and not PurePosixPath(module_id).is_absolute()
    return listed or bare or "node_modules" in module_id


def _file_names(stem: str, env: BuildEnvironment) -> str:
    parts = [stem, env.filename_suffix, ".[format]", ".min" if env.minify else None, ".js"]
    return "".join(p for p in parts if p)


def _replacement(value: str) -> str:
    if value in ("true", "false") or re.fullmatch(r"-?\d+", value):
        return value
    return json.dumps(value)


def replacements(env: BuildEnvironment) -> dict[str, str]:
    """``process.env.X`` substitutions; NODE_ENV is only inlined for UMD."""
    values = env.to_environ()
    if not env.is_umd:
        values.pop("NODE_ENV", None)
    return {f"process.env.{key}": _replacement(value) for key, value in sorted(values.items())}


def _babel_options(transpile: ResolvedConfig) -> dict[str, Any]:
    if transpile.builtin and transpile.payload is not None:
        return {
            "babelrc": False,
            "configFile": False,
            "presets": transpile.payload["presets"],
            "plugins": transpile.payload["plugins"],
            "babelHelpers": "runtime",
            "extensions": EXTENSIONS,
        }
    return {"babelrc": True, "babelHelpers": "bundled", "extensions": EXTENSIONS}


def bundle_config(project: Project, env: BuildEnvironment, transpile: ResolvedConfig) -> dict[str, Any]:
    if env.format is None:
        raise InvalidOption("--format", "a bundle config needs an output format")
    matches = sorted(glob.glob(env.input, root_dir=project.root, recursive=True))
    inputs = matches or [env.input]
    dirpath = PurePosixPath(*[p for p in (env.filename_prefix, env.output) if p])
    external = _unique(list(env.external) if env.external is not None else default_external(project, env))

    plugins: list[list[Any]] = [
        ["node-resolve", {"mainFields": ["module", "main", "jsnext", "browser"], "extensions": EXTENSIONS}],
        ["commonjs", {"include": "node_modules/**"}],
        ["json", {}],
        ["eslint", {"throwOnError": True}],
        ["babel", _babel_options(transpile)],
        ["replace", {"preventAssignment": True, "values": replacements(env)}],
    ]
    if env.minify:
        plugins.append(
            [
                "terser",
                {
                    "format": {"comments": False},
                    "compress": {"keep_infinity": True, "pure_getters": True, "passes": 10},
                    "ecma": 5,
                    "toplevel": env.is_cjs,
                },
            ]
        )

    config: dict[str, Any] = {
        "input": inputs,
        "output": {
            "name": env.name or default_name(project),
            "dir": str(dirpath / env.format),
            "entryFileNames": _file_names("[name]", env),
            "chunkFileNames": _file_names("[name]-[hash]", env),
            "format": env.format,
            "exports": "named" if env.is_esm else "auto",
            "globals": env.globals if env.globals is not None else default_globals(project),
            "sourcemap": env.sourcemap,
        },
        "external": external,
        "externalPattern": external_pattern(external),
        "externalizeBareImports": not env.is_umd,
        "plugins": plugins,
    }
    if env.watch:
        config["watch"] = {"include": get_watch_include(env.input), "exclude": ["node_modules/**"]}
    return config

