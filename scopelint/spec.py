"""Generate a contract specification from test names.

Every src contract lists its public and external functions, each with the
behaviours its tests describe. Tests for a function live in a test contract
named after it, in the test file named after the src file::

    src/Counter.sol         contract Counter { function setNumber(...) public }
    test/Counter.t.sol      contract SetNumber is CounterTest {
                                function test_SetsNumberToInput() public {}
                                function testFuzz_RevertIf_CallerIsNotOwner() public {}
                            }

renders as::

    Contract Specification: Counter
    └── setNumber
        ├── Sets number to input
        └── Reverts if caller is not owner

The test contract may also carry the src contract's name as a prefix
(``CounterSetNumber`` or ``Counter_SetNumber``).
"""

import dataclasses
import logging
import pathlib
import re
from collections.abc import Iterable

from scopelint import config as scopelint_config
from scopelint import parser
from scopelint.rules import base, naming

logger = logging.getLogger(__name__)

_PUBLIC_VISIBILITY: frozenset[str] = frozenset({"public", "external"})
_INTERNAL_VISIBILITY: frozenset[str] = frozenset({"internal", "private"})
_WORD_PAT = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")


@dataclasses.dataclass(frozen=True)
class FunctionSpec:
    name: str
    requirements: tuple[str, ...]


@dataclasses.dataclass(frozen=True)
class ContractSpec:
    name: str
    path: str
    functions: tuple[FunctionSpec, ...]

    def render(self) -> str:
        """Return the specification as a newline-terminated tree."""
        lines = [f"Contract Specification: {self.name}"]
        for idx, func in enumerate(self.functions):
            last_func = idx == len(self.functions) - 1
            lines.append(f"{'└──' if last_func else '├──'} {func.name}")
            indent = "    " if last_func else "│   "
            for req_idx, requirement in enumerate(func.requirements):
                last_req = req_idx == len(func.requirements) - 1
                lines.append(f"{indent}{'└──' if last_req else '├──'} {requirement}")
        return "\n".join(lines) + "\n"


def describe_test(name: str) -> str | None:
    """Turn a test function name into a sentence.

    ``test_SetsNumberToInput`` gives ``Sets number to input`` and
    ``testFuzz_RevertIf_CallerIsNotOwner`` gives ``Reverts if caller is not
    owner``. Returns None for names outside the test naming scheme.
    """
    match = naming.TEST_NAME_PAT.match(name)
    if match is None or not match.group(5):
        return None
    words = [
        word if word.isupper() else word.lower()
        for part in match.group(5).split("_")
        for word in _WORD_PAT.findall(part)
    ]
    if match.group(4):
        words = ["reverts", match.group(4).lower(), *words]
    if not words:
        return None
    return " ".join([words[0][:1].upper() + words[0][1:], *words[1:]])


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


def _file_stem(path: pathlib.Path) -> str:
    return path.name.split(".", 1)[0]


def _function_label(func: parser.FunctionDefinition) -> str:
    return func.name.name if func.name is not None else func.kind


def _is_listed(func: parser.FunctionDefinition, *, show_internal: bool) -> bool:
    if func.kind == "constructor":
        return True
    if func.kind == "modifier":
        return False
    if func.visibility in _PUBLIC_VISIBILITY:
        return True
    return show_internal and func.visibility in _INTERNAL_VISIBILITY


def _read_unit(path: pathlib.Path) -> parser.SourceUnit | None:
    try:
        return parser.parse_source(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, parser.ParseError) as exc:
        logger.warning("Skipping %s: %s", path, exc)
        return None


def _test_contracts(
    test_files: Iterable[pathlib.Path], cfg: scopelint_config.Config
) -> dict[str, list[parser.ContractDefinition]]:
    """Group test contracts by the stem of the file they are declared in."""
    by_stem: dict[str, list[parser.ContractDefinition]] = {}
    for path in test_files:
        if cfg.is_file_ignored(path) or cfg.classify(path) is not base.FileKind.TEST:
            continue
        unit = _read_unit(path)
        if unit is None:
            continue
        by_stem.setdefault(_file_stem(path), []).extend(
            contract for contract in unit.contracts() if contract.name is not None
        )
    return by_stem


def _requirements(
    contract_name: str,
    label: str,
    candidates: list[parser.ContractDefinition],
) -> tuple[str, ...]:
    targets = {_normalize(label), _normalize(contract_name + label)}
    requirements: list[str] = []
    for test_contract in candidates:
        if _normalize(test_contract.name.name) not in targets:
            continue
        for func in test_contract.functions():
            if func.name is None or func.visibility not in _PUBLIC_VISIBILITY:
                continue
            description = describe_test(func.name.name)
            if description is not None:
                requirements.append(description)
    return tuple(requirements)


def build_specs(
    src_files: Iterable[pathlib.Path],
    test_files: Iterable[pathlib.Path],
    cfg: scopelint_config.Config,
    *,
    show_internal: bool = False,
) -> list[ContractSpec]:
    """Build the specification of every contract in *src_files*.

    Interfaces are skipped. Files that are ignored, not classified as src or
    test, or cannot be read or outlined are left out, the last with a warning.

    Args:
        src_files: Candidate src files, in output order.
        test_files: Candidate test files.
        cfg: The active configuration.
        show_internal: Also list internal and private functions.

    Returns:
        One ContractSpec per src contract.
    """
    tests_by_stem = _test_contracts(test_files, cfg)
    specs: list[ContractSpec] = []
    for path in src_files:
        if cfg.is_file_ignored(path) or cfg.classify(path) is not base.FileKind.SRC:
            continue
        unit = _read_unit(path)
        if unit is None:
            continue
        for contract in unit.contracts():
            if contract.kind == "interface" or contract.name is None:
                continue
            name = contract.name.name
            candidates = tests_by_stem.get(_file_stem(path), []) + (
                tests_by_stem.get(name, []) if name != _file_stem(path) else []
            )
            functions = tuple(
                FunctionSpec(
                    name=_function_label(func),
                    requirements=_requirements(
                        name, _function_label(func), candidates
                    ),
                )
                for func in contract.functions()
                if _is_listed(func, show_internal=show_internal)
            )
            specs.append(
                ContractSpec(name=name, path=cfg.display_path(path), functions=functions)
            )
    return specs
