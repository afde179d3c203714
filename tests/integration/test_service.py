"""
Integration tests for the monitoring service.

Runs monitor / get_history / echo_status / universal_monitor end to end over
FakeChain networks: fetch, deltas, alerts, storage and notification.
"""

import threading

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from yield_monitor.config import settings
from yield_monitor.core.aggregator import AdapterRegistry, MetricsAggregator
from yield_monitor.core.errors import (
    ContractCallFailure,
    InvalidRequest,
    UnsupportedNetwork,
    UnsupportedProtocol,
)
from yield_monitor.core.models import Alert, AlertType, Severity, ThresholdRules, make_pool_id
from yield_monitor.core.service import MonitoringService, high_apy_opportunities
from yield_monitor.fetchers.base import ProtocolAdapter
from yield_monitor.notifications.slack import send_slack_batch

from conftest import (
    COMET_USDC_BASE,
    COMET_USDC_ETH,
    MORPHO_VAULT_ETH,
    RAY_RATE_1_5_PCT,
    START_BLOCK,
    USDC,
    USDC_ATOKEN,
    WETH,
)

AAVE_USDC_POOL = make_pool_id("aave_v3", "ethereum", USDC)


@pytest.fixture
def funded(chains):
    """Register one live pool per protocol on ethereum, one comet on base."""
    ethereum = chains["ethereum"]
    ethereum.add_aave_reserve(USDC, USDC_ATOKEN, RAY_RATE_1_5_PCT, available=1_000_000 * 10 ** 6)
    ethereum.add_comet(COMET_USDC_ETH, total_supply=2_000_000 * 10 ** 6, total_borrow=10 ** 12, supply_rate=5 * 10 ** 8)
    ethereum.add_vault(MORPHO_VAULT_ETH, total_assets=5_000_000 * 10 ** 6, symbol="maUSDC")
    chains["base"].add_comet(COMET_USDC_BASE, total_supply=3_000_000 * 10 ** 6, total_borrow=10 ** 12, supply_rate=5 * 10 ** 8)
    return chains


class TestMonitorValidation:
    """Request validation happens before any RPC."""

    @pytest.mark.integration
    @pytest.mark.smoke
    def test_unknown_network(self, service, web3_factory):
        with pytest.raises(UnsupportedNetwork) as exc_info:
            service.monitor("fantom", ["aave_v3"])

        assert "Unsupported network: fantom" in str(exc_info.value)
        assert "ethereum" in str(exc_info.value)
        web3_factory.assert_not_called()

    @pytest.mark.integration
    def test_empty_protocol_list(self, service, web3_factory):
        with pytest.raises(InvalidRequest):
            service.monitor("ethereum", [])

        web3_factory.assert_not_called()

    @pytest.mark.integration
    def test_unknown_protocol(self, service, web3_factory):
        with pytest.raises(UnsupportedProtocol) as exc_info:
            service.monitor("ethereum", ["aave_v3", "euler"])

        assert "aave_v3" in exc_info.value.supported
        web3_factory.assert_not_called()


class TestMonitor:
    """Strict single-network monitoring."""

    @pytest.mark.integration
    @pytest.mark.smoke
    def test_first_reading_has_no_deltas(self, service, funded):
        result = service.monitor("ethereum", ["aave_v3"], [USDC])

        assert result["network"] == "ethereum"
        assert [m["pool_id"] for m in result["metrics"]] == [AAVE_USDC_POOL]
        assert result["deltas"] == []
        assert result["alerts"] == []
        assert result["current_block"] == START_BLOCK
        assert "base" in result["supported_networks"]
        assert len(service.history.get_history(AAVE_USDC_POOL)) == 1

    @pytest.mark.integration
    @pytest.mark.alerts
    def test_spike_between_blocks(self, service, funded, connection_manager, notifier):
        """Default rules alert on a >10% APY spike."""
        service.monitor("ethereum", ["aave_v3"], [USDC])

        funded["ethereum"].add_aave_reserve(USDC, USDC_ATOKEN, 2 * RAY_RATE_1_5_PCT, available=1_000_000 * 10 ** 6)
        connection_manager.record_block("ethereum", START_BLOCK + 10)
        result = service.monitor("ethereum", ["aave_v3"], [USDC])

        [delta] = result["deltas"]
        assert delta["blocks_elapsed"] == 10
        assert delta["apy_change_percent"] > 100

        [alert] = result["alerts"]
        assert alert["alert_type"] == "apy_spike"
        assert alert["severity"] == "critical"
        assert alert["message"].startswith("APY spiked by ")
        assert " in 10 blocks " in alert["message"]

        [sent] = notifier.call_args[0]
        assert isinstance(sent[0], Alert)
        assert sent[0].alert_type == AlertType.APY_SPIKE

        assert [e.block_number for e in service.history.get_history(AAVE_USDC_POOL)] == [START_BLOCK, START_BLOCK + 10]

    @pytest.mark.integration
    def test_same_block_is_not_stored_twice(self, service, funded):
        service.monitor("ethereum", ["aave_v3"], [USDC])
        result = service.monitor("ethereum", ["aave_v3"], [USDC])

        assert result["deltas"][0]["blocks_elapsed"] == 0
        assert len(service.history.get_history(AAVE_USDC_POOL)) == 1

    @pytest.mark.integration
    @pytest.mark.alerts
    def test_concurrent_store_waits_for_alerts(self, service, metric_factory):
        """A second request cannot store between another's deltas and alerts."""
        rules = ThresholdRules(apy_spike_percent=10)
        service.history.store([metric_factory(apy=4.0, block_number=100)])
        compute_deltas = service.delta_engine.compute_deltas
        competing = threading.Thread(
            target=service._process,
            args=([metric_factory(apy=100.0, block_number=120)], rules),
        )

        def compute_then_compete(metrics):
            deltas = compute_deltas(metrics)
            if threading.current_thread() is not competing:
                competing.start()
                competing.join(timeout=0.2)
                assert competing.is_alive()
            return deltas

        service.delta_engine.compute_deltas = compute_then_compete
        _deltas, [alert] = service._process([metric_factory(apy=8.0, block_number=110)], rules)
        competing.join(timeout=5)

        assert alert.previous_value == 4.0
        assert alert.change_percent == pytest.approx(100.0)
        assert alert.message.endswith("(4.0000% → 8.0000%)")
        assert [e.block_number for e in service.history.get_history(alert.pool_id)] == [100, 110, 120]

    @pytest.mark.integration
    @pytest.mark.alerts
    def test_explicit_empty_rules_disable_alerts(self, service, funded, connection_manager):
        service.monitor("ethereum", ["aave_v3"], [USDC])
        funded["ethereum"].add_aave_reserve(USDC, USDC_ATOKEN, 3 * RAY_RATE_1_5_PCT, available=10 ** 6)
        connection_manager.record_block("ethereum", START_BLOCK + 1)

        result = service.monitor("ethereum", ["aave_v3"], [USDC], threshold_rules={})

        assert len(result["deltas"]) == 1
        assert result["alerts"] == []

    @pytest.mark.integration
    def test_protocols_run_in_request_order(self, connection_manager):
        """Strict fetches run adapters sequentially in caller order."""
        calls = []

        class RecordingAdapter(ProtocolAdapter):
            def fetch_metrics(self, addresses, network_id, strict=False):
                calls.append((self.protocol_id, network_id, strict))
                return []

        adapters = {
            name: type(name, (RecordingAdapter,), {"protocol_id": name})
            for name in ["first", "second"]
        }
        aggregator = MetricsAggregator(connection_manager, AdapterRegistry(connection_manager, adapters))

        aggregator.fetch_all(["second", "first"], None, "ethereum")

        assert calls == [("second", "ethereum", True), ("first", "ethereum", True)]

    @pytest.mark.integration
    def test_strict_failure_aborts_request(self, service, funded):
        """WETH has no Aave reserve registered: the whole request fails."""
        with pytest.raises(ContractCallFailure):
            service.monitor("ethereum", ["aave_v3"], [USDC, WETH])

        assert service.history.pool_count() == 0

    @pytest.mark.integration
    def test_protocol_not_deployed_is_empty(self, service, funded):
        result = service.monitor("polygon", ["morpho"])

        assert result["metrics"] == []

    @pytest.mark.integration
    @pytest.mark.alerts
    def test_notifier_failure_does_not_fail_request(self, service, funded, connection_manager, notifier, caplog):
        notifier.side_effect = RuntimeError("slack down")
        service.monitor("ethereum", ["aave_v3"], [USDC])
        funded["ethereum"].add_aave_reserve(USDC, USDC_ATOKEN, 2 * RAY_RATE_1_5_PCT, available=1_000_000 * 10 ** 6)
        connection_manager.record_block("ethereum", START_BLOCK + 1)

        result = service.monitor("ethereum", ["aave_v3"], [USDC])

        assert len(result["alerts"]) == 1
        assert "Alert notification failed" in caplog.text


class TestHistoryAndStatus:

    @pytest.mark.integration
    def test_get_history_limit(self, service, funded, connection_manager):
        for offset in range(4):
            connection_manager.record_block("ethereum", START_BLOCK + offset)
            service.monitor("ethereum", ["aave_v3"], [USDC])

        result = service.get_history(AAVE_USDC_POOL, limit=2)

        assert result["pool_id"] == AAVE_USDC_POOL
        assert result["count"] == 2
        assert [e["block_number"] for e in result["entries"]] == [START_BLOCK + 2, START_BLOCK + 3]
        assert result["current_block"] == START_BLOCK + 3

    @pytest.mark.integration
    @pytest.mark.parametrize("limit", [0, -5])
    def test_get_history_limit_clamped(self, service, funded, limit):
        service.monitor("ethereum", ["aave_v3"], [USDC])

        assert service.get_history(AAVE_USDC_POOL, limit=limit)["count"] == 1

    @pytest.mark.integration
    def test_get_history_unknown_pool(self, service):
        result = service.get_history("aave_v3:ethereum:0xdead")

        assert result["entries"] == []
        assert result["count"] == 0
        assert result["current_block"] == 0

    @pytest.mark.integration
    def test_history_readable_with_monitored_address(self, service, funded):
        """A lowercase vault address reads back under the id built from it."""
        service.monitor("ethereum", ["morpho"], [MORPHO_VAULT_ETH])

        result = service.get_history(make_pool_id("morpho", "ethereum", MORPHO_VAULT_ETH))

        assert result["count"] == 1
        assert result["entries"][0]["asset"] == "USDC"

    @pytest.mark.integration
    def test_sweep_leaves_active_network(self, service, funded, connection_manager):
        service.monitor("ethereum", ["aave_v3"], [USDC])
        service.universal_monitor(protocols=["compound_v3"], networks=["base", "polygon"])

        status = service.echo_status()
        assert status["active_network"] == "ethereum"
        assert status["current_block"] == START_BLOCK
        assert set(status["connected_networks"]) == {"ethereum", "base", "polygon"}

    @pytest.mark.integration
    @pytest.mark.smoke
    def test_echo_status(self, connection_manager, notifier, funded):
        clock_values = iter([1000.0, 1042.5, 1042.5])
        service = MonitoringService(connections=connection_manager, notifier=notifier, clock=lambda: next(clock_values))

        before = service.echo_status()
        service.monitor("ethereum", ["aave_v3"], [USDC])
        after = service.echo_status()

        assert before["rpc_connected"] is False
        assert before["current_block"] == 0
        assert before["pools_monitored"] == 0
        assert after["rpc_connected"] is True
        assert after["current_block"] == START_BLOCK
        assert after["pools_monitored"] == 1
        assert after["uptime"] == pytest.approx(42.5)
        assert after["connected_networks"] == ["ethereum"]

    @pytest.mark.integration
    def test_slack_notifier_when_webhook_configured(self, connection_manager, monkeypatch):
        monkeypatch.setitem(settings.ALERT_CONFIG, "slack_webhook", "https://hooks.slack.test/x")

        assert MonitoringService(connections=connection_manager).notifier is send_slack_batch


class TestUniversalMonitor:
    """Best-effort multi-network sweep."""

    @pytest.mark.integration
    @pytest.mark.smoke
    def test_sweep_summary_and_order(self, service, funded):
        result = service.universal_monitor(networks=["ethereum", "base", "fantom"])

        pools = [
            (m["protocol"], m["network"])
            for cells in result["protocols"].values()
            for cell in cells.values()
            for m in cell
        ]
        assert pools == [
            ("aave_v3", "ethereum"),
            ("compound_v3", "ethereum"),
            ("compound_v3", "base"),
            ("morpho", "ethereum"),
        ]
        assert result["protocols"]["aave_v3"]["base"] == []
        assert set(result["protocols"]["morpho"]) == {"ethereum", "base"}

        summary = result["summary"]
        assert summary["total_protocols"] == 3
        assert summary["total_pools"] == 4
        assert summary["total_tvl"] == pytest.approx(11_000_000.0)
        assert summary["best_apy"]["protocol"] == "morpho"
        assert summary["best_apy"]["apy"] == 6.2
        assert summary["best_apy"]["asset"] == "USDC"
        assert summary["current_blocks"] == {"ethereum": START_BLOCK, "base": START_BLOCK}

        assert result["errors"] == []
        assert result["alerts"] == []
        assert "historical" not in result

    @pytest.mark.integration
    def test_high_apy_opportunities(self, service, funded):
        result = service.universal_monitor(networks=["ethereum"])

        [opportunity] = result["opportunities"]
        assert opportunity["type"] == "high_apy_opportunity"
        assert opportunity["protocol"] == "morpho"
        assert opportunity["severity"] == "medium"
        assert opportunity["message"] == "High APY opportunity: 6.20% on USDC"

    @pytest.mark.integration
    def test_unreachable_network_is_isolated(self, service, funded):
        """Avalanche has no fake chain: its cells are empty, others proceed."""
        result = service.universal_monitor(protocols=["aave_v3"], networks=["ethereum", "avalanche"])

        assert len(result["protocols"]["aave_v3"]["ethereum"]) == 1
        assert result["protocols"]["aave_v3"]["avalanche"] == []
        assert len(result["errors"]) == 1
        assert result["errors"][0].startswith("avalanche:")

    @pytest.mark.integration
    def test_unknown_protocol_is_reported(self, service, funded):
        result = service.universal_monitor(protocols=["euler", "morpho"], networks=["ethereum"])

        assert result["protocols"]["euler"] == {}
        assert len(result["protocols"]["morpho"]["ethereum"]) == 1
        assert any("euler" in error for error in result["errors"])

    @pytest.mark.integration
    def test_no_valid_networks(self, service, web3_factory):
        with pytest.raises(UnsupportedNetwork):
            service.universal_monitor(networks=["fantom", "cronos"])

        web3_factory.assert_not_called()

    @pytest.mark.integration
    def test_assets_only_reach_asset_keyed_adapters(self, service, funded):
        """A caller asset list narrows Aave reserves but not comets or vaults."""
        result = service.universal_monitor(networks=["ethereum"], assets=[WETH])

        assert result["protocols"]["aave_v3"]["ethereum"] == []
        assert len(result["protocols"]["compound_v3"]["ethereum"]) == 1
        assert len(result["protocols"]["morpho"]["ethereum"]) == 1

    @pytest.mark.integration
    @pytest.mark.alerts
    def test_sweep_alerts_and_historical(self, service, funded, connection_manager):
        rules = {"tvl_drain_percent": 20}
        service.universal_monitor(networks=["ethereum"], threshold_rules=rules)

        funded["ethereum"].add_vault(MORPHO_VAULT_ETH, total_assets=1_000_000 * 10 ** 6, symbol="maUSDC")
        connection_manager.record_block("ethereum", START_BLOCK + 25)
        result = service.universal_monitor(networks=["ethereum"], include_historical=True, threshold_rules=rules)

        [alert] = result["alerts"]
        assert alert["alert_type"] == "tvl_drain"
        assert alert["severity"] == Severity.CRITICAL.value
        assert alert["message"] == "TVL drained by 80.0000% in 25 blocks (5,000,000.00 → 1,000,000.00)"

        [vault_pool] = [m["pool_id"] for m in result["protocols"]["morpho"]["ethereum"]]
        assert [e["block_number"] for e in result["historical"][vault_pool]] == [START_BLOCK, START_BLOCK + 25]

    @pytest.mark.integration
    def test_no_rules_means_no_sweep_alerts(self, service, funded, connection_manager):
        service.universal_monitor(networks=["ethereum"])
        funded["ethereum"].add_vault(MORPHO_VAULT_ETH, total_assets=10 ** 6, symbol="maUSDC")
        connection_manager.record_block("ethereum", START_BLOCK + 1)

        assert service.universal_monitor(networks=["ethereum"])["alerts"] == []


class TestOpportunities:

    @pytest.mark.unit
    def test_threshold_is_strict(self, metric_factory):
        metrics = [metric_factory(apy=3.0), metric_factory(apy=3.01, asset="DAI")]

        assert [o["asset"] for o in high_apy_opportunities(metrics)] == ["DAI"]
