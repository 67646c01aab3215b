"""Built-in eslint config.

React plugins, settings and rules are only added when ``react`` is a
dependency of any kind. TypeScript sources get their own parser through an
override block, so the same config serves mixed projects.
"""

from __future__ import annotations

from typing import Any

from bundlekit.configs.format import prettier_options
from bundlekit.detect.project import Project

DEFAULT_EXTENSIONS = ".js,.jsx,.ts,.tsx"
DEFAULT_IGNORE = ["node_modules/", "dist/", "coverage/", "*.min.js", "**/types/*.d.ts"]

# Browser globals that are easy to reference by accident.
RESTRICTED_GLOBALS = [
    "addEventListener", "blur", "close", "closed", "confirm", "defaultStatus",
    "defaultstatus", "event", "external", "find", "focus", "frameElement",
    "frames", "history", "innerHeight", "innerWidth", "length", "location",
    "locationbar", "menubar", "moveBy", "moveTo", "name", "onblur", "onerror",
    "onfocus", "onload", "onresize", "onunload", "open", "opener", "opera",
    "outerHeight", "outerWidth", "pageXOffset", "pageYOffset", "parent",
    "print", "removeEventListener", "resizeBy", "resizeTo", "screen",
    "screenLeft", "screenTop", "screenX", "screenY", "scroll", "scrollbars",
    "scrollBy", "scrollTo", "scrollX", "scrollY", "self", "status",
    "statusbar", "stop", "toolbar", "top",
]

PARSER_OPTIONS = {"ecmaVersion": 2018, "sourceType": "module", "ecmaFeatures": {"jsx": True}}

BASE_RULES: dict[str, Any] = {
    "array-callback-return": "warn",
    "default-case": ["warn", {"commentPattern": "^no default$"}],
    "dot-location": ["warn", "property"],
    "eqeqeq": ["warn", "smart"],
    "new-parens": "warn",
    "no-array-constructor": "warn",
    "no-caller": "warn",
    "no-cond-assign": ["warn", "except-parens"],
    "no-const-assign": "warn",
    "no-control-regex": "warn",
    "no-delete-var": "warn",
    "no-dupe-args": "warn",
    "no-dupe-class-members": "warn",
    "no-dupe-keys": "warn",
    "no-duplicate-case": "warn",
    "no-empty-character-class": "warn",
    "no-empty-pattern": "warn",
    "no-eval": "warn",
    "no-ex-assign": "warn",
    "no-extend-native": "warn",
    "no-extra-bind": "warn",
    "no-extra-label": "warn",
    "no-fallthrough": "warn",
    "no-func-assign": "warn",
    "no-implied-eval": "warn",
    "no-invalid-regexp": "warn",
    "no-iterator": "warn",
    "no-label-var": "warn",
    "no-labels": ["warn", {"allowLoop": True, "allowSwitch": False}],
    "no-lone-blocks": "warn",
    "no-loop-func": "warn",
    "no-multi-str": "warn",
    "no-new-func": "warn",
    "no-new-object": "warn",
    "no-new-symbol": "warn",
    "no-new-wrappers": "warn",
    "no-obj-calls": "warn",
    "no-octal": "warn",
    "no-octal-escape": "warn",
    "no-redeclare": "warn",
    "no-regex-spaces": "warn",
    "no-restricted-syntax": ["warn", "WithStatement"],
    "no-script-url": "warn",
    "no-self-assign": "warn",
    "no-self-compare": "warn",
    "no-sequences": "warn",
    "no-shadow-restricted-names": "warn",
    "no-sparse-arrays": "warn",
    "no-template-curly-in-string": "warn",
    "no-this-before-super": "warn",
    "no-throw-literal": "warn",
    "no-undef": "error",
    "no-restricted-globals": ["error", *RESTRICTED_GLOBALS],
    "no-unexpected-multiline": "warn",
    "no-unreachable": "warn",
    "no-unused-expressions": [
        "error",
        {"allowShortCircuit": True, "allowTernary": True, "allowTaggedTemplates": True},
    ],
    "no-unused-labels": "warn",
    "no-unused-vars": ["warn", {"args": "none", "ignoreRestSiblings": True}],
    "no-use-before-define": ["warn", {"functions": False, "classes": False, "variables": False}],
    "no-useless-computed-key": "warn",
    "no-useless-concat": "warn",
    "no-useless-constructor": "warn",
    "no-useless-escape": "warn",
    "no-useless-rename": [
        "warn",
        {"ignoreDestructuring": False, "ignoreImport": False, "ignoreExport": False},
    ],
    "no-with": "warn",
    "no-whitespace-before-property": "warn",
    "require-yield": "warn",
    "rest-spread-spacing": ["warn", "never"],
    "strict": ["warn", "never"],
    "unicode-bom": ["warn", "never"],
    "use-isnan": "warn",
    "valid-typeof": "warn",
    "getter-return": "warn",
    "import/first": "error",
    "import/no-amd": "error",
    "import/no-webpack-loader-syntax": "error",
}

REACT_RULES: dict[str, Any] = {
    "react/forbid-foreign-prop-types": ["warn", {"allowInPropTypes": True}],
    "react/jsx-no-comment-textnodes": "warn",
    "react/jsx-no-duplicate-props": ["warn", {"ignoreCase": True}],
    "react/jsx-no-target-blank": "warn",
    "react/jsx-no-undef": "error",
    "react/jsx-pascal-case": ["warn", {"allowAllCaps": True, "ignore": []}],
    "react/jsx-uses-react": "warn",
    "react/jsx-uses-vars": "warn",
    "react/no-danger-with-children": "warn",
    "react/no-direct-mutation-state": "warn",
    "react/no-is-mounted": "warn",
    "react/no-typos": "error",
    "react/react-in-jsx-scope": "error",
    "react/require-render-return": "error",
    "react/style-prop-object": "warn",
    "react-hooks/rules-of-hooks": "error",
    "react-hooks/exhaustive-deps": "warn",
}

TYPESCRIPT_OVERRIDE: dict[str, Any] = {
    "files": ["**/*.ts?(x)"],
    "parser": "@typescript-eslint/parser",
    "parserOptions": {**PARSER_OPTIONS, "warnOnUnsupportedTypeScriptVersion": True},
    "plugins": ["@typescript-eslint"],
    "rules": {
        "default-case": "off",
        "no-dupe-class-members": "off",
        "no-undef": "off",
        "@typescript-eslint/consistent-type-assertions": "warn",
        "no-array-constructor": "off",
        "@typescript-eslint/no-array-constructor": "warn",
        "@typescript-eslint/no-namespace": "error",
        "no-use-before-define": "off",
        "@typescript-eslint/no-use-before-define": [
            "warn",
            {"functions": False, "classes": False, "variables": False, "typedefs": False},
        ],
        "no-unused-vars": "off",
        "@typescript-eslint/no-unused-vars": ["warn", {"args": "none", "ignoreRestSiblings": True}],
        "no-useless-constructor": "off",
        "@typescript-eslint/no-useless-constructor": "warn",
    },
}


def lint_config(project: Project) -> dict[str, Any]:
    react = project.uses_react
    rules = {"prettier/prettier": ["error", prettier_options()], **BASE_RULES}
    if react:
        rules.update(REACT_RULES)
    return {
        "root": True,
        "parser": "@babel/eslint-parser",
        "extends": ["plugin:prettier/recommended"],
        "plugins": ["import", *(["react", "react-hooks"] if react else [])],
        "env": {"browser": True, "commonjs": True, "es6": True, "jest": True, "node": True},
        "parserOptions": {**PARSER_OPTIONS, "requireConfigFile": False},
        "settings": {"react": {"version": "detect"}} if react else {},
        "overrides": [TYPESCRIPT_OVERRIDE],
        "rules": rules,
    }
