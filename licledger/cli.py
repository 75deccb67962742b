"""
Command-line interface for the license ledger.
"""

from __future__ import annotations

import json
import os
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import click

from licledger.common.config import Config
from licledger.common.exceptions import LedgerError, SnapshotError
from licledger.ledger.core import LicenseLedger
from licledger.ledger.keygen import KeyGenerator
from licledger.ledger.signing import SnapshotSigner


def _reports_ledger_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn ledger and snapshot errors into click errors."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except LedgerError as err:
            msg = f"[{err.code}] {type(err).__name__}: {err.message}"
            raise click.ClickException(msg) from err
        except SnapshotError as err:
            raise click.ClickException(str(err)) from err

    return wrapper


def _open_ledger(ctx: click.Context) -> LicenseLedger:
    ledger_path: Path = ctx.obj["ledger_path"]
    if not ledger_path.exists():
        msg = f"No ledger at {ledger_path}. Run 'licledger init --admin NAME' first."
        raise click.ClickException(msg)
    return LicenseLedger(
        config=ctx.obj["config"],
        ledger_file_path=ledger_path,
        signer=_load_signer(ctx),
    )


def _load_signer(ctx: click.Context) -> SnapshotSigner | None:
    if not ctx.obj["sign"]:
        return None
    try:
        return SnapshotSigner.from_config(ctx.obj["config"])
    except ValueError as err:
        raise click.ClickException(str(err)) from err


caller_option = click.option(
    "--as",
    "caller",
    required=True,
    help="Principal performing the operation",
)


@click.group()
@click.option(
    "--ledger",
    "ledger_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Ledger file (default: from LICLEDGER_DATA_DIR or ./licledger/data)",
)
@click.option(
    "--keys-dir",
    default=None,
    help="Directory holding the signing keys (default: ./licledger/keys)",
)
@click.option(
    "--sign/--no-sign",
    default=False,
    help="Sign the ledger file on write and verify it on load",
)
@click.pass_context
def cli(
    ctx: click.Context,
    ledger_path: Path | None,
    keys_dir: str | None,
    sign: bool,  # noqa: FBT001
) -> None:
    """License ledger CLI"""
    if keys_dir:
        os.environ["LICLEDGER_KEYS_DIR"] = keys_dir
    config = Config()
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["ledger_path"] = ledger_path or config.LEDGER_FILE_PATH
    ctx.obj["sign"] = sign


@cli.command()
@click.pass_context
def keygen(ctx: click.Context) -> None:
    """Generate Ed25519 ledger signing keys"""
    generator = KeyGenerator(config=ctx.obj["config"])
    private_path, public_path = generator.generate_keys()
    click.echo(f"Keys generated and saved to {private_path.parent}")


@cli.command()
@click.option("--admin", required=True, help="Administrator principal")
@click.pass_context
@_reports_ledger_errors
def init(ctx: click.Context, admin: str) -> None:
    """Create an empty ledger file"""
    ledger_path: Path = ctx.obj["ledger_path"]
    if ledger_path.exists():
        msg = f"Ledger already exists at {ledger_path}"
        raise click.ClickException(msg)
    ledger = LicenseLedger(
        admin,
        config=ctx.obj["config"],
        ledger_file_path=ledger_path,
        signer=_load_signer(ctx),
    )
    ledger.save()
    click.echo(f"Ledger created at {ledger_path} (admin: {admin})")


@cli.command()
@caller_option
@click.argument("metadata")
@click.pass_context
@_reports_ledger_errors
def issue(ctx: click.Context, caller: str, metadata: str) -> None:
    """Issue a single license"""
    license_id = _open_ledger(ctx).issue(caller, metadata)
    click.echo(f"Issued license {license_id}")


@cli.command("issue-batch")
@caller_option
@click.option(
    "--file",
    "source",
    type=click.File("r"),
    default=None,
    help="Read one metadata entry per line",
)
@click.argument("items", nargs=-1)
@click.pass_context
@_reports_ledger_errors
def issue_batch(
    ctx: click.Context, caller: str, source: Any, items: tuple[str, ...]
) -> None:
    """Issue several licenses at once (all or nothing)"""
    batch = list(items)
    if source is not None:
        lines = (line.rstrip("\r\n") for line in source)
        batch.extend(line for line in lines if line)
    license_ids = _open_ledger(ctx).issue_batch(caller, batch)
    click.echo(f"Issued licenses {', '.join(str(i) for i in license_ids)}")


@cli.command()
@caller_option
@click.argument("license_id", type=int)
@click.argument("current_owner")
@click.argument("new_owner")
@click.pass_context
@_reports_ledger_errors
def transfer(
    ctx: click.Context,
    caller: str,
    license_id: int,
    current_owner: str,
    new_owner: str,
) -> None:
    """Accept a license from its current owner"""
    _open_ledger(ctx).transfer(caller, license_id, current_owner, new_owner)
    click.echo(f"License {license_id} transferred to {new_owner}")


@cli.command()
@caller_option
@click.argument("license_id", type=int)
@click.option(
    "--flag-only",
    is_flag=True,
    help="Set the terminated flag without removing ownership",
)
@click.pass_context
@_reports_ledger_errors
def terminate(
    ctx: click.Context,
    caller: str,
    license_id: int,
    flag_only: bool,  # noqa: FBT001
) -> None:
    """Terminate a license"""
    ledger = _open_ledger(ctx)
    if flag_only:
        ledger.simple_terminate(caller, license_id)
    else:
        ledger.terminate(caller, license_id)
    click.echo(f"License {license_id} terminated")


@cli.command()
@caller_option
@click.argument("license_id", type=int)
@click.pass_context
@_reports_ledger_errors
def reactivate(ctx: click.Context, caller: str, license_id: int) -> None:
    """Clear the terminated flag of a license"""
    _open_ledger(ctx).reactivate(caller, license_id)
    click.echo(f"License {license_id} reactivated")


@cli.command("update-metadata")
@caller_option
@click.argument("license_id", type=int)
@click.argument("metadata")
@click.pass_context
@_reports_ledger_errors
def update_metadata(
    ctx: click.Context, caller: str, license_id: int, metadata: str
) -> None:
    """Replace the metadata of a license"""
    _open_ledger(ctx).update_metadata(caller, license_id, metadata)
    click.echo(f"License {license_id} metadata updated")


@cli.command()
@click.argument("license_id", type=int)
@click.pass_context
@_reports_ledger_errors
def show(ctx: click.Context, license_id: int) -> None:
    """Show a license as JSON"""
    record = _open_ledger(ctx).get_license(license_id)
    if record is None:
        click.echo(json.dumps({"id": license_id, "status": "NotFound"}))
        return
    click.echo(json.dumps(record.model_dump(mode="json"), indent=2))


@cli.command()
@click.pass_context
@_reports_ledger_errors
def stats(ctx: click.Context) -> None:
    """Show ledger totals"""
    click.echo(json.dumps(_open_ledger(ctx).stats().model_dump(), indent=2))


if __name__ == "__main__":
    cli()
