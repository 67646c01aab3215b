"""Built-in lint-staged config: format, then lint, every staged source file."""

from __future__ import annotations

STAGED_PATTERN = "*.+(js|jsx|json|yml|yaml|css|less|scss|ts|tsx|md|graphql|mdx|vue)"


def lintstaged_config() -> dict[str, list[str]]:
    return {STAGED_PATTERN: ["bundlekit format", "bundlekit lint"]}
