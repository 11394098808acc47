"""Тесты для VaultLedger: deposit, supply, оценка долей.

Coverage:
- Создание ledger и валидация handles
- Deposit bookkeeping и события
- Supply в yield source (любой caller)
- Valuation queries (total / user value / interest)
- Сценарии: пустой ledger, начисление дохода, пропорциональность
- Инварианты bookkeeping
"""

import pytest

from vaultledger.core.domain import (
    Deposited,
    InvalidAddress,
    InvalidAmount,
    LedgerInvariantViolation,
    NoIdleFunds,
    Supplied,
    TransferFailed,
    VaultAddresses,
)
from vaultledger.core.math import BASE_UNIT, ROUNDING_TOLERANCE
from vaultledger.ledger import LedgerConfig, VaultLedger

from .conftest import ADDRESSES, ALICE, BOB, KEEPER


class TestConstruction:
    """Тесты создания ledger."""

    def test_addresses_exposed(self, ledger):
        assert ledger.addresses.yield_pool == ADDRESSES["yield_pool"]
        assert ledger.addresses.wrapped_asset == ADDRESSES["wrapped_asset"]
        assert ledger.addresses.claim_token == ADDRESSES["claim_token"]

    def test_accepts_addresses_model(self, yield_source, asset):
        ledger = VaultLedger(VaultAddresses(**ADDRESSES), yield_source, asset)
        assert ledger.total_principal == 0

    @pytest.mark.parametrize("field", ["yield_pool", "wrapped_asset", "claim_token"])
    def test_null_address_rejected(self, yield_source, asset, field):
        with pytest.raises(InvalidAddress):
            VaultLedger({**ADDRESSES, field: None}, yield_source, asset)

    @pytest.mark.parametrize("field", ["yield_pool", "wrapped_asset", "claim_token"])
    def test_empty_address_rejected(self, yield_source, asset, field):
        with pytest.raises(InvalidAddress):
            VaultLedger({**ADDRESSES, field: ""}, yield_source, asset)

    def test_missing_collaborators_rejected(self, yield_source, asset):
        with pytest.raises(InvalidAddress, match="yield_source"):
            VaultLedger(ADDRESSES, None, asset)
        with pytest.raises(InvalidAddress, match="asset_transfer"):
            VaultLedger(ADDRESSES, yield_source, None)

    def test_initial_state_empty(self, ledger):
        assert ledger.total_principal == 0
        assert ledger.get_idle_balance() == 0
        assert ledger.get_yield_source_balance() == 0
        assert ledger.depositors() == {}
        assert ledger.events() == ()


class TestDeposit:
    """Тесты deposit."""

    def test_deposit_records_principal(self, ledger, asset):
        ledger.deposit(ALICE, BASE_UNIT)

        assert ledger.principal_of(ALICE) == BASE_UNIT
        assert ledger.total_principal == BASE_UNIT
        assert ledger.get_idle_balance() == BASE_UNIT
        assert asset.balance_of("vault") == BASE_UNIT
        assert asset.balance_of(ALICE) == 99 * BASE_UNIT

    def test_deposit_emits_event(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)

        (event,) = ledger.events()
        assert isinstance(event, Deposited)
        assert event.depositor == ALICE
        assert event.amount == BASE_UNIT
        assert event.sequence == 0
        assert event.ts_utc_ms == 1_700_000_000_000

    def test_multiple_deposits_same_depositor(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(ALICE, BASE_UNIT // 2)

        assert ledger.principal_of(ALICE) == BASE_UNIT + BASE_UNIT // 2
        assert ledger.total_principal == BASE_UNIT + BASE_UNIT // 2

    def test_deposits_from_multiple_depositors(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(BOB, 2 * BASE_UNIT)

        assert ledger.depositors() == {ALICE: BASE_UNIT, BOB: 2 * BASE_UNIT}
        assert ledger.total_principal == 3 * BASE_UNIT

    def test_zero_deposit_rejected(self, ledger):
        with pytest.raises(InvalidAmount):
            ledger.deposit(ALICE, 0)
        assert ledger.total_principal == 0
        assert ledger.events() == ()

    def test_empty_depositor_rejected(self, ledger):
        with pytest.raises(InvalidAddress):
            ledger.deposit("", BASE_UNIT)

    def test_unfunded_deposit_fails_without_state_change(self, ledger):
        """Депозитор без средств: receive не проходит, bookkeeping не меняется"""
        with pytest.raises(TransferFailed):
            ledger.deposit("carol", BASE_UNIT)

        assert ledger.principal_of("carol") == 0
        assert "carol" not in ledger.depositors()
        assert ledger.get_idle_balance() == 0
        assert ledger.events() == ()


class TestSupply:
    """Тесты supply_to_yield_source."""

    def test_supply_moves_idle_to_yield_source(self, ledger, asset):
        ledger.deposit(ALICE, BASE_UNIT)

        supplied = ledger.supply_to_yield_source(ALICE)

        assert supplied == BASE_UNIT
        assert ledger.get_idle_balance() == 0
        assert ledger.get_yield_source_balance() == BASE_UNIT
        assert ledger.total_vault_value() == BASE_UNIT
        assert asset.balance_of("vault") == 0
        assert asset.balance_of("yield_pool", wrapped=True) == BASE_UNIT

    def test_supply_emits_event(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)

        event = ledger.events()[-1]
        assert isinstance(event, Supplied)
        assert event.amount == BASE_UNIT
        assert event.caller == KEEPER
        assert event.sequence == 1

    def test_supply_without_idle_funds_rejected(self, ledger):
        with pytest.raises(NoIdleFunds):
            ledger.supply_to_yield_source(BOB)

    def test_second_supply_without_new_deposits_rejected(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)

        with pytest.raises(NoIdleFunds):
            ledger.supply_to_yield_source(KEEPER)

    def test_anyone_can_supply(self, ledger):
        """Supply может вызвать не депозитор"""
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(ALICE)
        ledger.deposit(ALICE, BASE_UNIT // 10)

        assert ledger.supply_to_yield_source(BOB) == BASE_UNIT // 10
        assert ledger.get_yield_source_balance() == BASE_UNIT + BASE_UNIT // 10

    def test_supply_does_not_change_principal(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)

        assert ledger.principal_of(ALICE) == BASE_UNIT
        assert ledger.total_principal == BASE_UNIT


class TestValuation:
    """Тесты valuation queries."""

    def test_empty_ledger_returns_zero(self, ledger):
        """Пустой ledger: нет деления на ноль"""
        assert ledger.total_vault_value() == 0
        assert ledger.user_value(ALICE) == 0
        assert ledger.user_interest(ALICE) == 0

    def test_unknown_depositor_has_zero_value(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        assert ledger.user_value(BOB) == 0
        assert ledger.user_interest(BOB) == 0

    def test_value_equals_principal_before_yield(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(BOB, 3 * BASE_UNIT)

        assert ledger.user_value(ALICE) == BASE_UNIT
        assert ledger.user_value(BOB) == 3 * BASE_UNIT
        assert ledger.user_interest(ALICE) == 0

    def test_views_are_idempotent(self, ledger, yield_source):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(BOB, 2 * BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        yield_source.accrue_bps(123)

        first = (ledger.total_vault_value(), ledger.user_value(ALICE), ledger.user_interest(BOB))
        second = (ledger.total_vault_value(), ledger.user_value(ALICE), ledger.user_interest(BOB))
        assert first == second

    def test_equal_depositors_share_yield(self, ledger, yield_source):
        """Две равные доли, доход 10%: каждому по 1.1 единицы"""
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(BOB, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)

        yield_source.accrue_bps(1_000)

        alice_value = ledger.user_value(ALICE)
        bob_value = ledger.user_value(BOB)
        assert abs(alice_value - bob_value) <= ROUNDING_TOLERANCE
        assert alice_value == BASE_UNIT + BASE_UNIT // 10
        assert ledger.user_interest(ALICE) == BASE_UNIT // 10
        assert ledger.user_interest(BOB) == BASE_UNIT // 10

    def test_five_percent_yield_interest(self, ledger, yield_source):
        """Доход 5% на две равные доли: ~0.05 единицы каждому"""
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.deposit(BOB, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)

        yield_source.accrue_bps(500)

        assert ledger.user_interest(ALICE) == pytest.approx(BASE_UNIT // 20, abs=ROUNDING_TOLERANCE)
        assert ledger.user_interest(BOB) == pytest.approx(BASE_UNIT // 20, abs=ROUNDING_TOLERANCE)

    def test_late_depositor_does_not_capture_earlier_yield_share(self, ledger, yield_source):
        """Доля определяется principal, а не временем депозита"""
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        yield_source.accrue_bps(1_000)
        ledger.deposit(BOB, BASE_UNIT)

        # total value 2.1, principal 2.0 → каждая единица principal стоит 1.05
        assert ledger.user_value(ALICE) == ledger.user_value(BOB)
        assert ledger.user_value(ALICE) == (21 * BASE_UNIT) // 20

    def test_interest_never_negative_on_loss(self, ledger, yield_source):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        yield_source.accrue(-BASE_UNIT // 4)

        assert ledger.user_value(ALICE) == 3 * BASE_UNIT // 4
        assert ledger.user_interest(ALICE) == 0

    def test_vault_value_covers_principal(self, ledger, yield_source):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        ledger.deposit(BOB, 2 * BASE_UNIT)
        yield_source.accrue_bps(42)

        assert ledger.total_vault_value() >= ledger.total_principal


class TestSnapshotAndInvariants:
    """Тесты снапшота и проверки инвариантов."""

    def test_snapshot_reflects_state(self, ledger, yield_source):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        ledger.deposit(BOB, BASE_UNIT)
        yield_source.accrue_bps(1_000)

        snapshot = ledger.snapshot()

        assert snapshot.total_principal == 2 * BASE_UNIT
        assert snapshot.idle_balance == BASE_UNIT
        assert snapshot.idle_wrapped_balance == 0
        assert snapshot.yield_source_balance == BASE_UNIT + BASE_UNIT // 10
        assert snapshot.total_vault_value == ledger.total_vault_value()
        assert snapshot.depositors == {ALICE: BASE_UNIT, BOB: BASE_UNIT}
        assert snapshot.addresses == ledger.addresses

    def test_invariants_hold_after_operations(self, ledger, yield_source):
        ledger.deposit(ALICE, 3 * BASE_UNIT)
        ledger.deposit(BOB, BASE_UNIT)
        ledger.supply_to_yield_source(KEEPER)
        yield_source.accrue_bps(777)
        ledger.withdraw(ALICE, BASE_UNIT)
        ledger.withdraw(BOB, BASE_UNIT)

        ledger.check_invariants()
        assert ledger.total_principal == sum(ledger.depositors().values())

    def test_corrupted_total_detected(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger._total_principal += 1

        with pytest.raises(LedgerInvariantViolation):
            ledger.check_invariants()

    def test_full_withdrawal_keeps_zero_record(self, ledger):
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.withdraw(ALICE, BASE_UNIT)

        assert ledger.depositors() == {ALICE: 0}
        assert ledger.principal_of(ALICE) == 0

    def test_pruning_removes_zero_record(self, yield_source, asset):
        ledger = VaultLedger(
            ADDRESSES, yield_source, asset, config=LedgerConfig(prune_empty_records=True)
        )
        ledger.deposit(ALICE, BASE_UNIT)
        ledger.withdraw(ALICE, BASE_UNIT)

        assert ledger.depositors() == {}
        assert ledger.principal_of(ALICE) == 0
        assert ledger.user_value(ALICE) == 0
        ledger.check_invariants()
