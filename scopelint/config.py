"""Load scopelint configuration from `.scopelint` and `foundry.toml`.

``.scopelint`` holds file-level ignores::

    [ignore]
    files = ["src/legacy/Old.sol", "test/integration/*.sol"]

    [ignore.overrides]
    "src/BaseBridgeReceiver.sol" = ["src"]
    "src/legacy/**/*.sol" = ["src", "error"]

``foundry.toml`` tells scopelint where the src, script and test directories
live. A ``[check]`` section (``src_path``, ``script_path``, ``test_path``)
overrides the ``[profile.default]`` (or root-level) ``src``, ``script`` and
``test`` keys.
"""

from __future__ import annotations

import dataclasses
import fnmatch
import logging
import pathlib
import tomllib
import typing

from scopelint.rules import base

if typing.TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

CONFIG_FILE = ".scopelint"
FOUNDRY_FILE = "foundry.toml"


class ConfigError(ValueError):
    """Raised when a configuration file has the wrong shape."""


@dataclasses.dataclass(frozen=True)
class CheckPaths:
    """Project directories, relative to the project root, without ``./``."""

    src: str = "src"
    script: str = "script"
    test: str = "test"


@dataclasses.dataclass(frozen=True)
class Config:
    """Resolved scopelint configuration.

    Attributes:
        root: Project root; layout paths and display paths are relative to it.
        ignore_root: Directory holding `.scopelint`; ignore globs are relative to it.
        paths: Where the src, script and test directories live.
        ignored_files: Globs of files that are skipped entirely.
        rule_overrides: ``(glob, rules)`` pairs disabling rules per file.
    """

    root: pathlib.Path
    ignore_root: pathlib.Path
    paths: CheckPaths = CheckPaths()
    ignored_files: tuple[str, ...] = ()
    rule_overrides: tuple[tuple[str, frozenset[base.RuleKind]], ...] = ()

    def _relative(self, path: pathlib.Path, base_dir: pathlib.Path) -> str:
        """Return *path* relative to *base_dir* with `/` separators and no `./`."""
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(base_dir.resolve())
            except ValueError:
                pass
        return path.as_posix().removeprefix("./")

    def is_file_ignored(self, path: pathlib.Path) -> bool:
        """Return True if *path* matches any ``[ignore] files`` glob."""
        relative = self._relative(path, self.ignore_root)
        return any(_glob_match(relative, pattern) for pattern in self.ignored_files)

    def ignored_rules(self, path: pathlib.Path) -> frozenset[base.RuleKind]:
        """Return the rules that ``[ignore.overrides]`` disables for *path*."""
        relative = self._relative(path, self.ignore_root)
        ignored: set[base.RuleKind] = set()
        for pattern, rules in self.rule_overrides:
            if _glob_match(relative, pattern):
                ignored.update(rules)
        return frozenset(ignored)

    def classify(self, path: pathlib.Path) -> base.FileKind | None:
        """Return the logical kind of *path*, or None if it is not checked.

        Files in the test directory are tests when they end in ``.t.sol`` and
        handlers otherwise. Files in the script and src directories are
        scripts and sources respectively.
        """
        relative = self._relative(path, self.root)
        if not relative.endswith(".sol"):
            return None
        if _is_under(relative, self.paths.test):
            if relative.endswith(".t.sol"):
                return base.FileKind.TEST
            return base.FileKind.HANDLER
        if _is_under(relative, self.paths.script):
            return base.FileKind.SCRIPT
        if _is_under(relative, self.paths.src):
            return base.FileKind.SRC
        return None

    def display_path(self, path: pathlib.Path) -> str:
        """Return *path* as ``./relative/path`` when it lives under the root."""
        absolute = path if path.is_absolute() else pathlib.Path.cwd() / path
        try:
            relative = absolute.resolve().relative_to(self.root.resolve())
        except ValueError:
            return path.as_posix()
        return f"./{relative.as_posix()}"


def _is_under(relative: str, directory: str) -> bool:
    directory = directory.strip("/")
    if directory in ("", "."):
        return True
    return relative == directory or relative.startswith(f"{directory}/")


def _glob_variants(pattern: str) -> Iterator[str]:
    """Yield *pattern* with every combination of its `**/` segments dropped."""
    head, sep, tail = pattern.partition("**/")
    if not sep:
        yield pattern
        return
    for rest in _glob_variants(tail):
        yield f"{head}**/{rest}"
        yield f"{head}{rest}"


def _glob_match(path: str, pattern: str) -> bool:
    """Match like globset: `*` crosses directories and each `**/` may match none."""
    return any(
        fnmatch.fnmatchcase(path, variant)
        for variant in _glob_variants(pattern.removeprefix("./"))
    )


def _normalize_dir(raw: str) -> str:
    return raw.strip().removeprefix("./").rstrip("/") or "."


def _find_upwards(start: pathlib.Path, name: str) -> pathlib.Path | None:
    """Walk up from *start* to find the nearest file called *name*."""
    for directory in [start, *start.parents]:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_toml(path: pathlib.Path) -> dict[str, typing.Any] | None:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Failed to read %s: %s. Using default config.", path, exc)
        return None


def _table(value: typing.Any) -> dict[str, typing.Any]:
    """Return *value* if it is a TOML table, otherwise an empty one."""
    return value if isinstance(value, dict) else {}


def parse_paths(data: dict[str, typing.Any]) -> CheckPaths:
    """Resolve the project layout from parsed ``foundry.toml`` data."""
    profile = _table(_table(data.get("profile")).get("default"))
    check = _table(data.get("check"))

    def _resolve(check_key: str, foundry_key: str, default: str) -> str:
        raw = check.get(check_key)
        if not isinstance(raw, str):
            raw = profile.get(foundry_key, data.get(foundry_key, default))
        return _normalize_dir(raw) if isinstance(raw, str) else default

    return CheckPaths(
        src=_resolve("src_path", "src", "src"),
        script=_resolve("script_path", "script", "script"),
        test=_resolve("test_path", "test", "test"),
    )


def parse_ignores(
    data: dict[str, typing.Any],
) -> tuple[tuple[str, ...], tuple[tuple[str, frozenset[base.RuleKind]], ...]]:
    """Parse the ``[ignore]`` section of ``.scopelint`` data.

    Returns:
        The ignored file globs and the per-glob rule overrides.

    Raises:
        ConfigError: If a section is not a table, a glob is not a string,
            a rule list is not a list, or a rule name is unknown.
    """
    section = data.get("ignore", {})
    if not isinstance(section, dict):
        msg = "[ignore] must be a table"
        raise ConfigError(msg)
    files_raw = section.get("files", [])
    if not isinstance(files_raw, list) or not all(
        isinstance(pattern, str) for pattern in files_raw
    ):
        msg = "[ignore] files must be a list of glob strings"
        raise ConfigError(msg)

    overrides_raw = section.get("overrides", {})
    if not isinstance(overrides_raw, dict):
        msg = "[ignore.overrides] must be a table of glob = [rules]"
        raise ConfigError(msg)

    overrides: list[tuple[str, frozenset[base.RuleKind]]] = []
    for pattern, rules_raw in overrides_raw.items():
        if not isinstance(rules_raw, list):
            msg = f"Rules for '{pattern}' must be an array"
            raise ConfigError(msg)
        rules: set[base.RuleKind] = set()
        for rule_name in rules_raw:
            rule = None
            if isinstance(rule_name, str):
                rule = base.RuleKind.from_name(rule_name)
            if rule is None:
                msg = f"Unknown rule: '{rule_name}'"
                raise ConfigError(msg)
            rules.add(rule)
        overrides.append((pattern, frozenset(rules)))
    return tuple(files_raw), tuple(overrides)


def load_config(start: pathlib.Path | None = None) -> Config:
    """Return the Config for the project containing *start*.

    Searches upward from *start* (defaults to ``Path.cwd()``) for
    ``foundry.toml`` and ``.scopelint``. Missing files give defaults. A file
    that cannot be read or has the wrong shape is logged and replaced by
    defaults as well, so configuration problems never abort a run.

    Args:
        start: Directory to begin the upward search. Defaults to cwd.

    Returns:
        The resolved Config.
    """
    search_root = (start if start is not None else pathlib.Path.cwd()).resolve()

    root = search_root
    paths = CheckPaths()
    foundry_toml = _find_upwards(search_root, FOUNDRY_FILE)
    if foundry_toml is not None:
        root = foundry_toml.parent
        foundry_data = _read_toml(foundry_toml)
        if foundry_data is not None:
            paths = parse_paths(foundry_data)

    ignore_root = root
    ignored_files: tuple[str, ...] = ()
    rule_overrides: tuple[tuple[str, frozenset[base.RuleKind]], ...] = ()
    scopelint_file = _find_upwards(search_root, CONFIG_FILE)
    if scopelint_file is not None:
        ignore_root = scopelint_file.parent
        ignore_data = _read_toml(scopelint_file)
        if ignore_data is not None:
            try:
                ignored_files, rule_overrides = parse_ignores(ignore_data)
            except ConfigError as exc:
                logger.warning(
                    "Failed to parse %s: %s. Using default config.", scopelint_file, exc
                )

    return Config(
        root=root,
        ignore_root=ignore_root,
        paths=paths,
        ignored_files=ignored_files,
        rule_overrides=rule_overrides,
    )


def filter_rules(
    all_rules: Iterable[base.Rule],
    config: Config,
    path: pathlib.Path,
    file_kind: base.FileKind,
) -> list[base.Rule]:
    """Return the rules to run on *path*.

    Drops rules that do not apply to *file_kind* and rules disabled for the
    file by ``[ignore.overrides]``.

    Args:
        all_rules: Full list of available rule instances.
        config: The active configuration.
        path: The file about to be checked.
        file_kind: The file's logical kind.

    Returns:
        Filtered list preserving the original order.
    """
    ignored = config.ignored_rules(path)
    return [
        rule
        for rule in all_rules
        if rule.is_applicable(file_kind) and rule.kind not in ignored
    ]
