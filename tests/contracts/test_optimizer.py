import unittest
from unittest.mock import patch

from yield_optimizer.chain.accounts import ZERO_ADDRESS, generate_address
from yield_optimizer.chain.contract import external
from yield_optimizer.chain.errors import ReentrantCall, InvalidAddress
from yield_optimizer.contracts.aave import MockAaveV3
from yield_optimizer.contracts.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    InvalidOwner,
    NoFundsDeposited,
    Unauthorized,
)
from yield_optimizer.contracts.optimizer import (
    Deposited,
    Rebalanced,
    Withdrawn,
    YieldOptimizer,
)
from yield_optimizer.contracts.ownable import OwnershipTransferred
from yield_optimizer.contracts.protocol import Protocol
from yield_optimizer.contracts.token import Transfer
from tests.test_support import YieldOptimizerTestCase


class YieldOptimizerContractTestCase(YieldOptimizerTestCase):
    def protocol_balances(self) -> tuple[int, int]:
        return (
            self.optimizer.get_protocol_balance(Protocol.AAVE),
            self.optimizer.get_protocol_balance(Protocol.COMPOUND),
        )

    def test_deployment(self):
        self.assertEqual(self.owner, self.optimizer.owner())
        self.assertEqual(self.aave.address, self.optimizer.aave())
        self.assertEqual(self.compound.address, self.optimizer.compound())
        self.assertEqual(self.usdc.address, self.optimizer.usdc())
        self.assertEqual(Protocol.NONE, self.optimizer.current_protocol())
        self.assertEqual(0, self.optimizer.get_total_balance())

    def test_get_best_protocol(self):
        for aave_rate, compound_rate, expected in (
            ("3", "4", Protocol.COMPOUND),
            ("5", "4", Protocol.AAVE),
            ("4", "4", Protocol.COMPOUND),
            ("0", "0", Protocol.COMPOUND),
            ("0.00000001", "0", Protocol.AAVE),
        ):
            with self.subTest(aave_rate=aave_rate, compound_rate=compound_rate):
                self.set_rates(aave=aave_rate, compound=compound_rate)
                self.assertEqual(expected, self.optimizer.get_best_protocol())

    def test_get_protocol_rate(self):
        self.assertEqual(3 * 10**8, self.optimizer.get_protocol_rate(Protocol.AAVE))
        self.assertEqual(4 * 10**8, self.optimizer.get_protocol_rate(Protocol.COMPOUND))
        with self.assertRaises(ValueError):
            self.optimizer.get_protocol_rate(Protocol.NONE)

    def test_deposit(self):
        amount = self.usdc_amount(10_000)
        receipt = self.approve_and_deposit(self.user, amount)

        self.assertEqual(
            [Deposited(self.user, amount, Protocol.COMPOUND)],
            receipt.events(Deposited),
        )
        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())
        self.assertEqual(amount, self.optimizer.get_total_balance())
        self.assertEqual((0, amount), self.protocol_balances())
        self.assertEqual(amount, self.compound.get_balance(self.optimizer.address))
        # funds are held by the protocol, not the optimizer
        self.assertEqual(0, self.usdc.balance_of(self.optimizer.address))
        self.assertEqual(
            self.usdc_amount(self.USER_FUNDING) - amount,
            self.usdc.balance_of(self.user),
        )

        with self.subTest("deposits are pooled across depositors"):
            self.approve_and_deposit(self.user_2, amount)
            self.assertEqual(2 * amount, self.optimizer.get_total_balance())

        with self.subTest("deposit into Aave"):
            self.set_rates(aave="5")
            receipt = self.approve_and_deposit(self.user, amount)
            self.assertEqual(
                [Deposited(self.user, amount, Protocol.AAVE)],
                receipt.events(Deposited),
            )
            self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())
            self.assertEqual(
                amount, self.aave.get_balance(self.optimizer.address, self.usdc.address)
            )

    def test_deposit_to_other_protocol_does_not_consolidate(self):
        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.set_rates(aave="5")
        self.approve_and_deposit(self.user, 2 * amount)

        self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())
        self.assertEqual((2 * amount, amount), self.protocol_balances())
        # only the balance held by the current protocol is reported
        self.assertEqual(2 * amount, self.optimizer.get_total_balance())

        with self.subTest("rebalance consolidates"):
            self.set_rates(compound="6")
            receipt = self.optimizer.connect(self.user).rebalance()
            self.assertEqual(
                [Rebalanced(Protocol.AAVE, Protocol.COMPOUND, 2 * amount)],
                receipt.events(Rebalanced),
            )
            self.assertEqual((0, 3 * amount), self.protocol_balances())
            self.assertEqual(3 * amount, self.optimizer.get_total_balance())

    def test_deposit_validation(self):
        round_before = self.chain.round

        with self.subTest("zero amount"):
            self.usdc.connect(self.user).approve(self.optimizer.address, 100)
            with self.assertRaises(InvalidAmount) as err:
                self.optimizer.connect(self.user).deposit(0)
            self.assertEqual("Amount must be greater than 0", err.exception.reason)

        with self.subTest("negative amount"):
            with self.assertRaises(InvalidAmount):
                self.optimizer.connect(self.user).deposit(-1)

        with self.subTest("insufficient allowance"):
            with self.assertRaises(InsufficientAllowance):
                self.optimizer.connect(self.user).deposit(101)

        with self.subTest("insufficient balance"):
            depositor = generate_address()
            self.usdc.connect(depositor).approve(self.optimizer.address, 100)
            with self.assertRaises(InsufficientBalance):
                self.optimizer.connect(depositor).deposit(100)

        # no state changes, other than the approvals
        self.assertEqual(Protocol.NONE, self.optimizer.current_protocol())
        self.assertEqual((0, 0), self.protocol_balances())
        self.assertEqual(round_before + 2, self.chain.round)
        self.assertEqual([], self.chain.logs(self.optimizer.address))

    def test_withdraw(self):
        amount = self.usdc_amount(10_000)
        self.approve_and_deposit(self.user, amount)
        owner_balance = self.usdc.balance_of(self.owner)

        receipt = self.optimizer.connect(self.owner).withdraw(self.usdc_amount(4_000))
        self.assertEqual(
            [Withdrawn(self.owner, self.usdc_amount(4_000))], receipt.events(Withdrawn)
        )
        self.assertEqual(
            owner_balance + self.usdc_amount(4_000), self.usdc.balance_of(self.owner)
        )
        self.assertEqual(self.usdc_amount(6_000), self.optimizer.get_total_balance())
        # funds are sent directly to the owner
        self.assertEqual(0, self.usdc.balance_of(self.optimizer.address))

        with self.subTest("withdraw from Aave"):
            self.set_rates(aave="5")
            self.optimizer.connect(self.user).rebalance()
            owner_balance = self.usdc.balance_of(self.owner)
            self.optimizer.connect(self.owner).withdraw(self.usdc_amount(1_000))
            self.assertEqual(
                owner_balance + self.usdc_amount(1_000), self.usdc.balance_of(self.owner)
            )
            self.assertEqual(self.usdc_amount(5_000), self.optimizer.get_total_balance())

        with self.subTest("draining does not reset the current protocol"):
            self.optimizer.connect(self.owner).withdraw(self.usdc_amount(5_000))
            self.assertEqual(0, self.optimizer.get_total_balance())
            self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())

    def test_withdraw_validation(self):
        with self.subTest("no funds deposited"):
            with self.assertRaises(NoFundsDeposited) as err:
                self.optimizer.connect(self.owner).withdraw(1)
            self.assertEqual("No funds deposited", err.exception.reason)

        self.approve_and_deposit(self.user, self.usdc_amount(10_000))
        user_balance = self.usdc.balance_of(self.user)

        with self.subTest("only the owner can withdraw"):
            with self.assertRaises(Unauthorized):
                self.optimizer.connect(self.user).withdraw(1)
            self.assertEqual(user_balance, self.usdc.balance_of(self.user))

        with self.subTest("access control is checked before the amount"):
            with self.assertRaises(Unauthorized):
                self.optimizer.connect(self.user).withdraw(0)

        with self.subTest("zero amount"):
            with self.assertRaises(InvalidAmount) as err:
                self.optimizer.connect(self.owner).withdraw(0)
            self.assertEqual("Amount must be greater than 0", err.exception.reason)

        self.assertEqual(self.usdc_amount(10_000), self.optimizer.get_total_balance())

    def test_rebalance(self):
        """
        A=3%, B=4%, deposit 10,000 -> B; set A=5%; rebalance -> A
        """
        amount = self.usdc_amount(10_000)
        self.approve_and_deposit(self.user, amount)
        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())

        self.set_rates(aave="5")
        receipt = self.optimizer.connect(self.user_2).rebalance()

        self.assertEqual(
            [Rebalanced(Protocol.COMPOUND, Protocol.AAVE, amount)],
            receipt.events(Rebalanced),
        )
        self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())
        self.assertEqual((amount, 0), self.protocol_balances())
        self.assertEqual(amount, self.optimizer.get_total_balance())
        self.assertEqual(0, self.usdc.balance_of(self.optimizer.address))
        self.assertEqual(amount, self.usdc.balance_of(self.aave.address))
        self.assertEqual(0, self.usdc.balance_of(self.compound.address))

        with self.subTest("rebalance is idempotent"):
            round_before = self.chain.round
            receipt = self.optimizer.connect(self.user_2).rebalance()
            self.assertEqual([], receipt.logs)
            self.assertEqual(round_before + 1, receipt.round)
            self.assertEqual((amount, 0), self.protocol_balances())

    def test_rebalance_conservation(self):
        amount = self.usdc_amount("12345.678901")
        self.approve_and_deposit(self.user, amount)

        for aave_rate, compound_rate in (
            ("5", "4"),
            ("5", "6"),
            ("7", "6"),
            ("7", "7"),
            ("0", "0"),
        ):
            with self.subTest(aave_rate=aave_rate, compound_rate=compound_rate):
                self.set_rates(aave=aave_rate, compound=compound_rate)
                total_supply = self.usdc.total_supply()
                self.optimizer.connect(self.user).rebalance()

                best = self.optimizer.get_best_protocol()
                self.assertEqual(best, self.optimizer.current_protocol())
                self.assertEqual(amount, sum(self.protocol_balances()))
                self.assertEqual(amount, self.optimizer.get_total_balance())
                self.assertEqual(total_supply, self.usdc.total_supply())

    def test_rebalance_without_deposit(self):
        self.set_rates(aave="5")
        receipt = self.optimizer.connect(self.user).rebalance()
        self.assertEqual([], receipt.logs)
        self.assertEqual(Protocol.NONE, self.optimizer.current_protocol())

    def test_rebalance_immediately_after_deposit(self):
        amount = self.usdc_amount(50_000)
        self.approve_and_deposit(self.user, amount)

        receipt = self.optimizer.connect(self.user).rebalance()
        self.assertEqual([], receipt.events(Rebalanced))
        # no adapter calls are made, i.e., no token transfers
        self.assertEqual([], receipt.events(Transfer))
        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())
        self.assertEqual((0, amount), self.protocol_balances())

    def test_rebalance_with_zero_balance(self):
        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.optimizer.connect(self.owner).withdraw(amount)

        self.set_rates(aave="5")
        receipt = self.optimizer.connect(self.user).rebalance()
        self.assertEqual(
            [Rebalanced(Protocol.COMPOUND, Protocol.AAVE, 0)],
            receipt.events(Rebalanced),
        )
        self.assertEqual([], receipt.events(Transfer))
        self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())

    def test_withdraw_more_than_balance(self):
        self.approve_and_deposit(self.user, self.usdc_amount(1_000))
        owner_balance = self.usdc.balance_of(self.owner)
        round_before = self.chain.round

        with self.assertRaises(InsufficientBalance) as err:
            self.optimizer.connect(self.owner).withdraw(self.usdc_amount(1_001))
        self.assertEqual("Insufficient balance", err.exception.reason)

        self.assertEqual(owner_balance, self.usdc.balance_of(self.owner))
        self.assertEqual(self.usdc_amount(1_000), self.optimizer.get_total_balance())
        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())
        self.assertEqual(round_before, self.chain.round)

    def test_failed_rebalance_is_rolled_back(self):
        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.set_rates(aave="5")

        usdc_logs_before = len(self.chain.logs(self.usdc.address))

        # funds are redeemed from Compound, and then the Aave deposit fails
        def failing_deposit(pool, *args, **kwargs):
            raise InsufficientAllowance()

        with patch.object(MockAaveV3, "deposit", external(failing_deposit)):
            with self.assertRaises(InsufficientAllowance):
                self.optimizer.connect(self.user).rebalance()

        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())
        self.assertEqual((0, amount), self.protocol_balances())
        self.assertEqual(usdc_logs_before, len(self.chain.logs(self.usdc.address)))

    def test_reentrancy(self):
        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.set_rates(aave="5")

        optimizer = self.optimizer

        def reentrant_deposit(pool, *args, **kwargs):
            optimizer.rebalance()

        with patch.object(MockAaveV3, "deposit", external(reentrant_deposit)):
            with self.assertRaises(ReentrantCall):
                self.optimizer.connect(self.user).rebalance()

        self.assertEqual(Protocol.COMPOUND, self.optimizer.current_protocol())
        self.assertEqual((0, amount), self.protocol_balances())

        with self.subTest("guard is released after the revert"):
            self.optimizer.connect(self.user).rebalance()
            self.assertEqual(Protocol.AAVE, self.optimizer.current_protocol())

    def test_ownership(self):
        self.approve_and_deposit(self.user, self.usdc_amount(1_000))

        with self.subTest("only the owner can transfer ownership"):
            with self.assertRaises(Unauthorized) as err:
                self.optimizer.connect(self.user).transfer_ownership(self.user)
            self.assertEqual("Ownable: caller is not the owner", err.exception.reason)

        with self.subTest("zero address is not a valid owner"):
            with self.assertRaises(InvalidOwner):
                self.optimizer.connect(self.owner).transfer_ownership(ZERO_ADDRESS)

        with self.subTest("transfer ownership"):
            receipt = self.optimizer.connect(self.owner).transfer_ownership(self.user_2)
            self.assertEqual(
                [OwnershipTransferred(self.owner, self.user_2)],
                receipt.events(OwnershipTransferred),
            )
            self.assertEqual(self.user_2, self.optimizer.owner())

            with self.assertRaises(Unauthorized):
                self.optimizer.connect(self.owner).withdraw(1)

            balance = self.usdc.balance_of(self.user_2)
            self.optimizer.connect(self.user_2).withdraw(100)
            self.assertEqual(balance + 100, self.usdc.balance_of(self.user_2))

        with self.subTest("renounce ownership"):
            self.optimizer.connect(self.user_2).renounce_ownership()
            self.assertEqual(ZERO_ADDRESS, self.optimizer.owner())
            with self.assertRaises(Unauthorized):
                self.optimizer.connect(self.user_2).withdraw(1)
            with self.assertRaises(InvalidAddress):
                self.optimizer.connect(ZERO_ADDRESS).withdraw(1)

    def test_optimizer_is_depositor_of_record(self):
        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.approve_and_deposit(self.user_2, amount)

        self.assertEqual(2 * amount, self.compound.get_balance(self.optimizer.address))
        self.assertEqual(0, self.compound.get_balance(self.user))
        self.assertEqual(0, self.compound.get_balance(self.user_2))

    def test_deploy_another_optimizer(self):
        other = self.chain.deploy(
            YieldOptimizer,
            self.user,
            self.aave.address,
            self.compound.address,
            self.usdc.address,
        )
        self.assertEqual(self.user, other.owner())

        amount = self.usdc_amount(1_000)
        self.approve_and_deposit(self.user, amount)
        self.usdc.connect(self.user_2).approve(other.address, amount)
        other.connect(self.user_2).deposit(amount)

        # each optimizer has its own balance in the shared protocols
        self.assertEqual(amount, self.optimizer.get_total_balance())
        self.assertEqual(amount, other.get_total_balance())
        self.assertEqual(
            2 * amount,
            self.compound.get_balance(self.optimizer.address)
            + self.compound.get_balance(other.address),
        )


if __name__ == "__main__":
    unittest.main()
