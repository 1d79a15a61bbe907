"""
Yield optimizer simulation shell
"""
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path

import click
from click_shell import shell  # type: ignore

from yield_optimizer.apps.shell.app import App, AccountNotFound
from yield_optimizer.chain.errors import Revert
from yield_optimizer.chain.model import TransactionReceipt
from yield_optimizer.client.units import format_units, rate_to_percent, USDC_DECIMALS
from yield_optimizer.services.auto_rebalance_service import TOLERANCE_PRESETS

__app: App | None = None
__config_file: Path | None = None


class AppNotInitialized(Exception):
    pass


def get_app() -> App:
    if __app is None:
        raise AppNotInitialized
    return __app


def echo_receipt(receipt: TransactionReceipt):
    click.echo(f"Transaction ID: {receipt.txn_id}")
    click.echo(f"Round: {receipt.round}")
    for log in receipt.logs:
        click.echo(f"  {log.event}")


def echo_revert(err: Revert):
    click.echo(f"Transaction reverted: {err.reason}", err=True)


def echo_error(err: Exception):
    click.echo(f"Error: {err}", err=True)


def to_decimal(value: str) -> Decimal:
    """
    :exception ValueError: if the value is not a finite decimal number
    """
    try:
        result = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"invalid number: {value}")
    if not result.is_finite():
        raise ValueError(f"invalid number: {value}")
    return result


@shell(
    prompt="yield-optimizer > ",
    intro="Yield Optimizer Simulation Shell",
)
@click.option(
    "--config-file",
    required=True,
    prompt="Config File",
    type=click.Path(exists=True, resolve_path=True, readable=True, path_type=Path),
)
def app(config_file: Path | None = None):
    if config_file is None:
        return

    global __app
    global __config_file

    __app = App.from_config_file(config_file)
    __config_file = config_file


@app.command
def show_config():
    """
    Displays the application config as JSON
    """
    click.echo(__config_file)
    click.echo(json.dumps(get_app().config, indent=3))


@app.command
def list_accounts():
    """
    Lists the accounts with their USDC balances. Account 0 is the owner.
    """
    current_app = get_app()
    for i, account in enumerate(current_app.accounts):
        balance = format_units(current_app.usdc.balance_of(account), USDC_DECIMALS)
        owner = " (owner)" if account == current_app.optimizer.owner() else ""
        click.echo(f"{i} : {account} : {balance} USDC{owner}")


@app.command
@click.option("--aave", type=click.STRING, help="Aave rate, e.g., 3.5 = 3.5%")
@click.option("--compound", type=click.STRING, help="Compound rate, e.g., 2.5 = 2.5%")
def set_rates(aave: str | None, compound: str | None):
    """
    Sets the lending protocol rates
    """
    try:
        get_app().set_rates(
            aave=None if aave is None else to_decimal(aave),
            compound=None if compound is None else to_decimal(compound),
        )
    except Revert as err:
        echo_revert(err)
    except ValueError as err:
        echo_error(err)


@app.command
@click.option(
    "--account", required=True, prompt="Account", type=click.INT, help="Account index"
)
@click.option(
    "--amount", required=True, prompt="Amount (USDC)", help="USDC amount, e.g., 100.50"
)
def deposit(account: int, amount: str):
    """
    Approves and deposits USDC into the optimizer
    """
    try:
        echo_receipt(get_app().deposit(account, to_decimal(amount)))
    except Revert as err:
        echo_revert(err)
    except (ValueError, AccountNotFound) as err:
        echo_error(err)


@app.command
@click.option(
    "--amount", required=True, prompt="Amount (USDC)", help="USDC amount, e.g., 100.50"
)
def withdraw(amount: str):
    """
    Withdraws USDC from the current protocol to the owner
    """
    try:
        echo_receipt(get_app().withdraw(to_decimal(amount)))
    except Revert as err:
        echo_revert(err)
    except ValueError as err:
        echo_error(err)


@app.command
@click.option("--account", default=0, type=click.INT, help="Account index")
def rebalance(account: int):
    """
    Moves the optimizer balance into the protocol paying the best rate
    """
    try:
        receipt = get_app().rebalance(account)
    except Revert as err:
        echo_revert(err)
        return
    except AccountNotFound as err:
        echo_error(err)
        return

    if len(receipt.logs) == 0:
        click.echo("Rebalance not needed")
    echo_receipt(receipt)


@app.command
@click.option("--account", default=0, type=click.INT, help="Account index")
def status(account: int):
    """
    Displays the optimizer status
    """
    try:
        state = get_app().status(account)
    except AccountNotFound as err:
        echo_error(err)
        return

    click.echo(f"Round: {state.round}")
    click.echo(f"Current Protocol: {state.current_protocol.name}")
    click.echo(f"Best Protocol: {state.best_protocol.name}")
    click.echo(f"Aave Rate: {state.aave_rate_percent}%")
    click.echo(f"Compound Rate: {state.compound_rate_percent}%")
    click.echo(f"Total Balance: {state.format_amount(state.total_balance)} USDC")
    click.echo(f"Aave Balance: {state.format_amount(state.aave_balance)} USDC")
    click.echo(f"Compound Balance: {state.format_amount(state.compound_balance)} USDC")
    click.echo(f"Wallet Balance: {state.format_amount(state.wallet_balance)} USDC")
    if state.rebalance_needed:
        click.echo("Rebalance needed")


@app.command
@click.option("--limit", default=10, type=click.INT, help="Max number of events")
def history(limit: int):
    """
    Displays the most recent rebalances
    """
    try:
        records = get_app().history(limit)
    except ValueError as err:
        echo_error(err)
        return

    if len(records) == 0:
        click.echo("No rebalancing history")
        return

    for record in records:
        click.echo(
            f"{record.timestamp.isoformat()} "
            f"{record.from_protocol.name} ({rate_to_percent(record.yield_before)}%) -> "
            f"{record.to_protocol.name} ({rate_to_percent(record.yield_after)}%) "
            f"{format_units(record.amount, USDC_DECIMALS)} USDC"
        )


@app.command
@click.option("--enabled/--disabled", default=True, help="Turn auto-rebalancing on or off")
@click.option(
    "--tolerance",
    type=click.STRING,
    help="Minimum yield improvement (%) that triggers a rebalance. "
    f"Presets: {', '.join(str(preset) for preset in TOLERANCE_PRESETS)}, or any non-negative custom value",
)
def auto_rebalance(enabled: bool, tolerance: str | None):
    """
    Configures auto-rebalancing
    """
    current_app = get_app()
    try:
        current_app.set_auto_rebalance(
            enabled, None if tolerance is None else to_decimal(tolerance)
        )
    except ValueError as err:
        echo_error(err)
        return
    service = current_app.auto_rebalance_service
    click.echo(
        f"Auto-rebalance: {'enabled' if service.enabled else 'disabled'}, "
        f"tolerance: {service.tolerance}%"
    )


if __name__ == "__main__":
    app()
