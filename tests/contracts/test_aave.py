import unittest

from yield_optimizer.chain.accounts import generate_address
from yield_optimizer.chain.chain import Chain
from yield_optimizer.contracts.aave import MockAaveV3
from yield_optimizer.contracts.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    InvalidRate,
)
from yield_optimizer.contracts.token import MockUSDC


class MockAaveV3TestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.chain = Chain()
        self.owner = generate_address()
        self.depositor = generate_address()
        self.beneficiary = generate_address()
        self.usdc = self.chain.deploy(MockUSDC, self.owner)
        self.aave = self.chain.deploy(MockAaveV3, self.owner)
        self.usdc.connect(self.owner).transfer(self.depositor, 1_000)

    def deposit(self, amount: int):
        self.usdc.connect(self.depositor).approve(self.aave.address, amount)
        self.aave.connect(self.depositor).deposit(
            self.usdc.address, amount, self.depositor, 0
        )

    def test_deposit(self):
        self.deposit(600)
        self.assertEqual(600, self.aave.get_balance(self.depositor, self.usdc.address))
        self.assertEqual(400, self.usdc.balance_of(self.depositor))
        self.assertEqual(600, self.usdc.balance_of(self.aave.address))

        with self.subTest("balances accumulate"):
            self.deposit(100)
            self.assertEqual(700, self.aave.get_balance(self.depositor, self.usdc.address))

        with self.subTest("deposit on behalf of another account"):
            self.usdc.connect(self.depositor).approve(self.aave.address, 50)
            self.aave.connect(self.depositor).deposit(
                self.usdc.address, 50, self.beneficiary, 0
            )
            self.assertEqual(50, self.aave.get_balance(self.beneficiary, self.usdc.address))
            self.assertEqual(700, self.aave.get_balance(self.depositor, self.usdc.address))

        with self.subTest("insufficient allowance"):
            with self.assertRaises(InsufficientAllowance):
                self.aave.connect(self.depositor).deposit(
                    self.usdc.address, 1, self.depositor, 0
                )

    def test_withdraw(self):
        self.deposit(600)

        receipt = self.aave.connect(self.depositor).withdraw(
            self.usdc.address, 200, self.beneficiary
        )
        self.assertEqual(200, receipt.return_value)
        self.assertEqual(400, self.aave.get_balance(self.depositor, self.usdc.address))
        self.assertEqual(200, self.usdc.balance_of(self.beneficiary))

        with self.subTest("insufficient balance"):
            with self.assertRaises(InsufficientBalance) as err:
                self.aave.connect(self.depositor).withdraw(
                    self.usdc.address, 401, self.depositor
                )
            self.assertEqual("Insufficient balance", err.exception.reason)
            self.assertEqual(400, self.aave.get_balance(self.depositor, self.usdc.address))

        with self.subTest("account without a balance"):
            with self.assertRaises(InsufficientBalance):
                self.aave.connect(self.beneficiary).withdraw(
                    self.usdc.address, 1, self.beneficiary
                )

        with self.subTest("negative amount"):
            with self.assertRaises(InvalidAmount):
                self.aave.connect(self.depositor).withdraw(
                    self.usdc.address, -1, self.depositor
                )

    def test_interest_rate(self):
        self.assertEqual(0, self.aave.get_interest_rate(self.usdc.address))

        # anyone can set the rate
        self.aave.connect(self.depositor).set_interest_rate(self.usdc.address, 3 * 10**8)
        self.assertEqual(3 * 10**8, self.aave.get_interest_rate(self.usdc.address))

        # rates are per asset
        self.assertEqual(0, self.aave.get_interest_rate(self.depositor))

        with self.assertRaises(InvalidRate):
            self.aave.connect(self.depositor).set_interest_rate(self.usdc.address, -1)


if __name__ == "__main__":
    unittest.main()
