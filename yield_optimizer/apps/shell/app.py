"""
Yield optimizer simulation shell
"""
import copy
import tomllib
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from yield_optimizer.chain.accounts import generate_address, generate_addresses
from yield_optimizer.chain.chain import Chain
from yield_optimizer.chain.model import Address, TransactionReceipt
from yield_optimizer.client.optimizer_client import OptimizerState, YieldOptimizerClient
from yield_optimizer.client.units import parse_units, to_rate, USDC_DECIMALS
from yield_optimizer.commands.queries.get_rebalancing_history import (
    GetRebalancingHistory,
    RebalancingHistoryRequest,
)
from yield_optimizer.commands.store_rebalance_events import StoreRebalanceEvents
from yield_optimizer.contracts.aave import MockAaveV3
from yield_optimizer.contracts.compound import MockCompoundV3
from yield_optimizer.contracts.optimizer import YieldOptimizer
from yield_optimizer.contracts.token import MockUSDC
from yield_optimizer.core.logging import configure_logging, get_logger
from yield_optimizer.data import Base
from yield_optimizer.domain.rebalance import RebalanceRecord
from yield_optimizer.services.auto_rebalance_service import AutoRebalanceService
from yield_optimizer.services.rebalance_history_service import (
    RebalanceHistoryService,
)

DEFAULT_CONFIG: dict[str, Any] = {
    "logging": {"level": "WARNING"},
    "database": {"url": "sqlite:///:memory:"},
    # annualized percentages
    "rates": {"aave": "3", "compound": "2.5"},
    "accounts": {
        # number of user accounts, not including the owner account
        "count": 3,
        # USDC minted to each user account
        "funding": "100000",
    },
    "auto_rebalance": {
        "enabled": False,
        "tolerance": "5",
        "poll_interval_seconds": 10,
    },
}


class AccountNotFound(Exception):
    """
    Account index is out of range
    """


def merge_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    :return: DEFAULT_CONFIG overlaid with the specified config
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in config.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def create_database_engine(url: str) -> Engine:
    """
    In-memory SQLite databases are shared across threads, i.e., the services and the shell see the same database.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False)


class App:
    """
    Deploys the yield optimizer contracts onto a fresh in-process chain, and runs the supporting services.

    Accounts
    --------
    - account 0 is the owner, which deploys the contracts and is the only account that can withdraw
    - accounts 1..N are user accounts that are funded with USDC
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(self, config: dict[str, Any]):
        self.config = merge_config(config)
        configure_logging(level=self.config["logging"]["level"])
        self._logger = get_logger(self)

        self.chain = Chain()
        self.owner = generate_address()
        self.accounts: list[Address] = [self.owner] + generate_addresses(
            int(self.config["accounts"]["count"])
        )

        def deploy_contracts():
            self.usdc = self.chain.deploy(MockUSDC, self.owner)
            self.aave = self.chain.deploy(MockAaveV3, self.owner)
            self.compound = self.chain.deploy(
                MockCompoundV3, self.owner, self.usdc.address
            )
            self.optimizer = self.chain.deploy(
                YieldOptimizer,
                self.owner,
                self.aave.address,
                self.compound.address,
                self.usdc.address,
            )

        def fund_accounts():
            funding = parse_units(self.config["accounts"]["funding"], USDC_DECIMALS)
            for account in self.accounts[1:]:
                self.usdc.connect(self.owner).mint(account, funding)

        def create_services():
            self.engine = create_database_engine(self.config["database"]["url"])
            Base.metadata.create_all(self.engine)
            self.session_factory = sessionmaker(self.engine)
            self._get_rebalancing_history = GetRebalancingHistory(self.session_factory)

            self.rebalance_history_service = RebalanceHistoryService(
                self.chain,
                self.optimizer,
                StoreRebalanceEvents(self.session_factory),
            )
            auto_rebalance = self.config["auto_rebalance"]
            self.auto_rebalance_service = AutoRebalanceService(
                self.chain,
                self.optimizer,
                keeper=self.owner,
                tolerance=Decimal(str(auto_rebalance["tolerance"])),
                poll_interval=timedelta(
                    seconds=float(auto_rebalance["poll_interval_seconds"])
                ),
                enabled=bool(auto_rebalance["enabled"]),
            )

        deploy_contracts()
        fund_accounts()
        self.set_rates(
            aave=Decimal(str(self.config["rates"]["aave"])),
            compound=Decimal(str(self.config["rates"]["compound"])),
        )
        create_services()
        self.rebalance_history_service.start()
        self.auto_rebalance_service.start()

        self._logger.info(
            "optimizer deployed: %s owner=%s", self.optimizer.address, self.owner
        )

    @classmethod
    def from_config_file(cls, file: Path) -> "App":
        """
        Constructs a new app instance from the specified TOML config file
        """
        with open(file, "rb") as config_file:
            config = tomllib.load(config_file)
        return cls(config)

    def account(self, index: int) -> Address:
        """
        :return: account address for the specified account index
        """
        if index < 0 or index >= len(self.accounts):
            raise AccountNotFound(f"account index must be in range [0, {len(self.accounts) - 1}]")
        return self.accounts[index]

    def client(self, account_index: int = 0) -> YieldOptimizerClient:
        return YieldOptimizerClient(self.chain, self.optimizer, self.account(account_index))

    def set_rates(self, aave: Decimal | None = None, compound: Decimal | None = None):
        """
        Sets the lending protocol rates

        :param aave: annualized percentage, if None then the rate is not changed
        :param compound: annualized percentage, if None then the rate is not changed
        """
        if aave is not None:
            self.aave.connect(self.owner).set_interest_rate(
                self.usdc.address, to_rate(aave)
            )
        if compound is not None:
            self.compound.connect(self.owner).set_supply_rate(
                self.usdc.address, to_rate(compound)
            )

    def deposit(self, account_index: int, amount: Decimal) -> TransactionReceipt:
        """
        :param amount: USDC amount
        """
        return self.client(account_index).approve_and_deposit(
            parse_units(amount, USDC_DECIMALS)
        )

    def withdraw(self, amount: Decimal) -> TransactionReceipt:
        """
        Withdraws USDC to the owner account

        :param amount: USDC amount
        """
        return self.client().withdraw(parse_units(amount, USDC_DECIMALS))

    def rebalance(self, account_index: int = 0) -> TransactionReceipt:
        return self.client(account_index).rebalance()

    def status(self, account_index: int = 0) -> OptimizerState:
        return self.client(account_index).get_state()

    def history(self, limit: int = 10) -> list[RebalanceRecord]:
        """
        :return: most recent rebalances first
        """
        return self._get_rebalancing_history(
            RebalancingHistoryRequest(optimizer=self.optimizer.address, limit=limit)
        )

    def set_auto_rebalance(self, enabled: bool, tolerance: Decimal | None = None):
        if tolerance is not None:
            self.auto_rebalance_service.tolerance = tolerance
        self.auto_rebalance_service.enabled = enabled

    def close(self):
        """
        Stops the services and releases the database connections
        """
        self.auto_rebalance_service.stop()
        self.rebalance_history_service.stop()
        self.engine.dispose()
