"""Entry point: scopelint [check [PATH]... | spec [--show-internal] | serve]."""

import logging
import pathlib
import typing

import typer

app = typer.Typer()

# Directories that never hold project sources.
_SKIP_DIRS: frozenset[str] = frozenset(
    {"lib", "node_modules", "out", "cache", "broadcast", ".git"}
)


def _collect_solidity_files(root: pathlib.Path) -> list[pathlib.Path]:
    """Recursively find .sol files under root, skipping dependency directories."""
    return sorted(
        sol_file
        for sol_file in root.rglob("*.sol")
        if not any(part in _SKIP_DIRS for part in sol_file.relative_to(root).parts)
    )


def _resolve_files(
    paths: list[pathlib.Path] | None,
    default_dirs: list[pathlib.Path],
) -> list[pathlib.Path]:
    """Expand paths, or the project directories when none are given.

    Returns absolute, deduplicated paths in discovery order.
    """
    candidates: list[pathlib.Path] = []
    for raw_path in paths or [path for path in default_dirs if path.is_dir()]:
        if raw_path.is_dir():
            candidates.extend(_collect_solidity_files(raw_path))
        else:
            candidates.append(raw_path)
    seen: set[pathlib.Path] = set()
    unique: list[pathlib.Path] = []
    for file_path in candidates:
        resolved = file_path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(resolved)
    return unique


@app.command()
def check(
    paths: typing.Annotated[
        list[pathlib.Path] | None,
        typer.Argument(
            help="Files or directories to check. Defaults to the src, script"
            " and test directories from foundry.toml."
        ),
    ] = None,
    jobs: typing.Annotated[
        int,
        typer.Option(
            "--jobs", "-j", min=1, help="Number of files checked in parallel."
        ),
    ] = 1,
    verbose: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """Check Solidity files for convention violations.

    Raises:
        typer.Exit: With code 1 if any finding is unsuppressed or a file failed.
    """
    from scopelint import analyzer as scopelint_analyzer  # noqa: PLC0415
    from scopelint import config as scopelint_config  # noqa: PLC0415
    from scopelint import rules  # noqa: PLC0415

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    cfg = scopelint_config.load_config()
    default_dirs = [
        cfg.root / cfg.paths.src,
        cfg.root / cfg.paths.script,
        cfg.root / cfg.paths.test,
    ]
    solidity_files = _resolve_files(paths, default_dirs)
    result = scopelint_analyzer.run(solidity_files, cfg, rules.ALL_RULES, jobs=jobs)

    for failure in result.failures:
        typer.echo(f"error: {failure.path}: {failure.reason}", err=True)

    if not result.is_valid():
        rendered = result.report.render()
        if rendered:
            typer.echo(rendered, err=True, nl=False)
        typer.echo("error: Convention checks failed, see details above", err=True)
        raise typer.Exit(code=1)


@app.command()
def spec(
    show_internal: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option(
            "--show-internal", help="Show internal functions in the specification."
        ),
    ] = False,
) -> None:
    """Generate a specification for the current project from test names."""
    from scopelint import config as scopelint_config  # noqa: PLC0415
    from scopelint import spec as scopelint_spec  # noqa: PLC0415

    cfg = scopelint_config.load_config()
    specs = scopelint_spec.build_specs(
        _resolve_files(None, [cfg.root / cfg.paths.src]),
        _resolve_files(None, [cfg.root / cfg.paths.test]),
        cfg,
        show_internal=show_internal,
    )
    typer.echo("\n".join(contract.render() for contract in specs), nl=False)


@app.command()
def serve() -> None:
    """Run the LSP server over stdio."""
    from scopelint import server  # noqa: PLC0415

    server.start()


def main() -> None:
    """Dispatch to the check, spec or serve command."""
    app()


if __name__ == "__main__":
    main()
