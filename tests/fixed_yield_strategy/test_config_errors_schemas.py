"""
Configuration, Error Taxonomy and Management Schema Tests.

============================================================
PURPOSE
============================================================
Test configuration loading and validation, the error registry
and management updates.

============================================================
"""

from decimal import Decimal

import pytest

from fixed_yield_strategy import (
    CRITICAL_ERROR_CODES,
    ERROR_CODES,
    RETRYABLE_ERROR_CODES,
    UNLIMITED,
    AuthorizationError,
    ErrorCategory,
    ExecutionError,
    ManagementUpdate,
    StrategyConfig,
    StrategyEventType,
    SwapConfig,
    SwapParameters,
    ValidationError,
    get_error_info,
    is_retryable,
)

from conftest import ALICE, BOB, KEEPER, MANAGEMENT


# ============================================================
# CONFIGURATION
# ============================================================

class TestStrategyConfig:
    """Test StrategyConfig."""

    def test_defaults_are_valid(self):
        """Test default configuration validates."""
        config = StrategyConfig()
        assert config.validate() == []
        assert config.swap.max_intermediary_per_tend == UNLIMITED
        assert config.oracle.enabled

    def test_presets(self):
        """Test testing and production presets."""
        testing = StrategyConfig.for_testing()
        assert testing.access.open_deposits
        assert not testing.alerting.enabled

        production = StrategyConfig.for_production()
        assert production.swap.min_swap_interval == 3600
        assert production.report.claim_rewards_on_report
        assert production.validate() == []

    def test_validate_collects_errors(self):
        """Test every violation is reported."""
        config = StrategyConfig(swap=SwapConfig(swap_slippage_bps=-1, min_amount_to_sell=Decimal("-5")))
        config.alerting.min_severity = "LOUD"

        errors = config.validate()
        assert len(errors) == 3

    def test_ensure_valid_raises(self):
        """Test ensure_valid raises a configuration error."""
        config = StrategyConfig(swap=SwapConfig(swap_slippage_bps=20_000))

        with pytest.raises(ValidationError) as exc_info:
            config.ensure_valid()
        assert exc_info.value.code == "VAL_INVALID_CONFIG"
        assert exc_info.value.details["errors"]

    def test_to_parameters(self):
        """Test swap config seeds the runtime parameters."""
        params = SwapConfig(min_swap_interval=60, swap_slippage_bps=25).to_parameters()
        assert params.min_swap_interval == 60
        assert params.swap_slippage_bps == 25
        assert params.last_swap_timestamp == 0

    def test_from_yaml(self, tmp_path):
        """Test loading from a YAML file."""
        path = tmp_path / "strategy.yaml"
        path.write_text(
            "swap:\n"
            "  max_intermediary_per_tend: 5000\n"
            "  min_swap_interval: 600\n"
            "  min_amount_to_sell: '0.5'\n"
            "  swap_slippage_bps: 30\n"
            "oracle:\n"
            "  twap_duration_seconds: 900\n"
            "access:\n"
            "  open_deposits: true\n"
            "  allow_list: [alice, bob]\n"
            "report:\n"
            "  claim_rewards_on_report: true\n"
            "alerting:\n"
            "  min_severity: error\n"
            "persist_events: false\n"
        )

        config = StrategyConfig.from_yaml(path)

        assert config.swap.max_intermediary_per_tend == Decimal("5000")
        assert config.swap.min_swap_interval == 600
        assert config.swap.min_amount_to_sell == Decimal("0.5")
        assert config.swap.swap_slippage_bps == 30
        assert config.oracle.twap_duration_seconds == 900
        assert config.access.open_deposits
        assert config.access.allow_list == ["alice", "bob"]
        assert config.report.claim_rewards_on_report
        assert config.alerting.min_severity == "ERROR"
        assert not config.persist_events

    def test_from_yaml_empty_file(self, tmp_path):
        """Test an empty file yields defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = StrategyConfig.from_yaml(path)
        assert config.swap.swap_slippage_bps == 50

    def test_from_yaml_bad_amount(self, tmp_path):
        """Test non-numeric amounts are configuration errors."""
        path = tmp_path / "bad.yaml"
        path.write_text("swap:\n  min_amount_to_sell: lots\n")

        with pytest.raises(ValidationError):
            StrategyConfig.from_yaml(path)

    def test_from_env(self, monkeypatch):
        """Test loading from environment variables."""
        monkeypatch.setenv("FYS_MAX_INTERMEDIARY_PER_TEND", "250")
        monkeypatch.setenv("FYS_MIN_SWAP_INTERVAL", "120")
        monkeypatch.setenv("FYS_SWAP_SLIPPAGE_BPS", "75")
        monkeypatch.setenv("FYS_ORACLE_ENABLED", "false")
        monkeypatch.setenv("FYS_OPEN_WITHDRAWALS", "true")
        monkeypatch.setenv("FYS_ALLOW_LIST", "alice, bob,")
        monkeypatch.setenv("FYS_ALERT_MIN_SEVERITY", "critical")

        config = StrategyConfig.from_env()

        assert config.swap.max_intermediary_per_tend == Decimal("250")
        assert config.swap.min_swap_interval == 120
        assert config.swap.swap_slippage_bps == 75
        assert not config.oracle.enabled
        assert config.access.open_withdrawals
        assert config.access.allow_list == ["alice", "bob"]
        assert config.alerting.min_severity == "CRITICAL"

    def test_from_env_defaults(self, monkeypatch):
        """Test unset variables fall back to defaults."""
        for name in ("FYS_MAX_INTERMEDIARY_PER_TEND", "FYS_SWAP_SLIPPAGE_BPS", "FYS_ALLOW_LIST"):
            monkeypatch.delenv(name, raising=False)

        config = StrategyConfig.from_env()

        assert config.swap.max_intermediary_per_tend == UNLIMITED
        assert config.swap.swap_slippage_bps == 50
        assert config.access.allow_list == []


# ============================================================
# ERROR TAXONOMY
# ============================================================

class TestErrorTaxonomy:
    """Test the error code registry."""

    def test_codes_are_keyed_by_code(self):
        """Test every registry entry is keyed by its own code."""
        for code, info in ERROR_CODES.items():
            assert info.code == code

    def test_prefixes_match_categories(self):
        """Test code prefixes follow the category."""
        prefixes = {
            "VAL": ErrorCategory.VALIDATION,
            "STL": ErrorCategory.STALENESS,
            "AUT": ErrorCategory.AUTHORIZATION,
            "MKT": ErrorCategory.MARKET_STATE,
            "EXE": ErrorCategory.EXECUTION,
            "INT": ErrorCategory.INTERNAL,
        }
        for code, info in ERROR_CODES.items():
            assert info.category == prefixes[code.split("_")[0]]

    def test_retryable_set(self):
        """Test staleness and fill failures are retryable."""
        assert RETRYABLE_ERROR_CODES == {
            "STL_MARKET_NOT_READY",
            "STL_OBSERVATION_WINDOW_UNSATISFIED",
            "EXE_SLIPPAGE_EXCEEDED",
            "EXE_MARKET_UNAVAILABLE",
        }
        assert is_retryable("EXE_SLIPPAGE_EXCEEDED")
        assert not is_retryable("AUT_NOT_KEEPER")

    def test_critical_set(self):
        """Test only internal errors are critical."""
        assert CRITICAL_ERROR_CODES == {"INT_UNEXPECTED_ERROR"}

    def test_unknown_code(self):
        """Test unknown codes map to a non-retryable internal error."""
        info = get_error_info("NOPE")
        assert info.category == ErrorCategory.INTERNAL
        assert not info.is_retryable

    def test_exception_defaults(self):
        """Test exceptions carry a default code and serialize."""
        error = ExecutionError("market down")
        assert error.code == "EXE_MARKET_UNAVAILABLE"
        assert str(error) == "[EXE_MARKET_UNAVAILABLE] market down"
        assert error.to_dict()["retryable"] is True
        assert AuthorizationError("no").code == "AUT_NOT_MANAGEMENT"


class TestSwapParameters:
    """Test runtime parameter invariants."""

    @pytest.mark.parametrize("bps", [-1, 10_001])
    def test_slippage_bounds(self, bps):
        """Test slippage outside 0..10000 is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            SwapParameters(swap_slippage_bps=bps).validate()
        assert exc_info.value.code == "VAL_INVALID_SLIPPAGE"

    def test_slippage_edges(self):
        """Test 0 and 10000 are both allowed."""
        SwapParameters(swap_slippage_bps=0).validate()
        SwapParameters(swap_slippage_bps=10_000).validate()

    def test_cooldown(self):
        """Test cooldown is measured from the last tend."""
        params = SwapParameters(min_swap_interval=100, last_swap_timestamp=1_000)
        assert not params.cooldown_elapsed(1_099)
        assert params.cooldown_elapsed(1_100)


# ============================================================
# MANAGEMENT
# ============================================================

class TestManagementSetters:
    """Test the management setters."""

    @pytest.mark.asyncio
    async def test_setters_update_params(self, strategy, events):
        """Test each setter changes its parameter and emits an event."""
        await strategy.set_max_intermediary_per_tend(MANAGEMENT, Decimal("100"))
        await strategy.set_min_swap_interval(MANAGEMENT, 60)
        await strategy.set_min_amount_to_sell(MANAGEMENT, Decimal("1"))
        await strategy.set_min_amount_to_trigger(MANAGEMENT, Decimal("2"))
        await strategy.set_swap_slippage_bps(MANAGEMENT, 10_000)

        params = strategy.params
        assert params.max_intermediary_per_tend == Decimal("100")
        assert params.min_swap_interval == 60
        assert params.min_amount_to_sell == Decimal("1")
        assert params.min_amount_to_trigger == Decimal("2")
        assert params.swap_slippage_bps == 10_000

        updates = [e for e in events if e.event_type == StrategyEventType.CONFIG_UPDATE]
        assert len(updates) == 5

    @pytest.mark.asyncio
    async def test_invalid_slippage_rejected(self, strategy):
        """Test out-of-range slippage leaves the old value."""
        with pytest.raises(ValidationError) as exc_info:
            await strategy.set_swap_slippage_bps(MANAGEMENT, 10_001)

        assert exc_info.value.code == "VAL_INVALID_SLIPPAGE"
        assert strategy.params.swap_slippage_bps == 100

    @pytest.mark.asyncio
    async def test_setters_require_management(self, strategy):
        """Test keepers cannot change parameters."""
        with pytest.raises(AuthorizationError):
            await strategy.set_min_swap_interval(KEEPER, 60)
        assert strategy.params.min_swap_interval == 0

    @pytest.mark.asyncio
    async def test_unlimited_cap(self, strategy):
        """Test the cap can be lifted."""
        await strategy.set_max_intermediary_per_tend(MANAGEMENT, Decimal("1"))
        await strategy.set_max_intermediary_per_tend(MANAGEMENT, UNLIMITED)
        assert strategy.params.max_intermediary_per_tend == UNLIMITED


class TestManagementUpdate:
    """Test batched management updates."""

    def test_schema_rejects_unknown_fields(self):
        """Test extra fields are forbidden."""
        import pydantic

        with pytest.raises(pydantic.ValidationError):
            ManagementUpdate.model_validate({"swap_slippage_bps": 10, "owner": "me"})

    def test_schema_allows_unlimited(self):
        """Test an infinite cap parses."""
        update = ManagementUpdate.model_validate({"max_intermediary_per_tend": "Infinity"})
        assert update.max_intermediary_per_tend == UNLIMITED

    @pytest.mark.asyncio
    async def test_applies_batch(self, strategy, events):
        """Test a batch changes parameters, gates and the allow-list together."""
        await strategy.apply_management_update(MANAGEMENT, {
            "swap_slippage_bps": 25,
            "min_swap_interval": 300,
            "open_deposits": False,
            "allow_list_additions": [ALICE, BOB],
        })

        assert strategy.params.swap_slippage_bps == 25
        assert strategy.params.min_swap_interval == 300
        assert not strategy.open_deposits
        assert ALICE in strategy.allow_list and BOB in strategy.allow_list

        types = [e.event_type for e in events]
        assert types.count(StrategyEventType.ALLOW_LIST_GRANT) == 2
        assert types.count(StrategyEventType.CONFIG_UPDATE) == 1

    @pytest.mark.asyncio
    async def test_invalid_batch_changes_nothing(self, strategy):
        """Test a schema failure is a configuration error with no effect."""
        with pytest.raises(ValidationError) as exc_info:
            await strategy.apply_management_update(MANAGEMENT, {
                "swap_slippage_bps": 10_001,
                "open_deposits": False,
            })

        assert exc_info.value.code == "VAL_INVALID_CONFIG"
        assert strategy.params.swap_slippage_bps == 100
        assert strategy.open_deposits

    @pytest.mark.asyncio
    async def test_unauthorized_batch_changes_nothing(self, strategy):
        """Test a rejected caller rolls back the whole batch."""
        with pytest.raises(AuthorizationError):
            await strategy.apply_management_update(KEEPER, ManagementUpdate(
                open_deposits=False,
                allow_list_additions=[ALICE],
            ))

        assert strategy.open_deposits
        assert ALICE not in strategy.allow_list
