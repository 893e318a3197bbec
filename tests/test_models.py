import pytest

from healthmon.models import (
    AlertEvent,
    AlertSeverity,
    AlertStatus,
    BusinessMetrics,
    ComponentType,
    ContainerMetrics,
    CPUUsage,
    MicroServiceMetricsSet,
    NodeMetrics,
    PowerMetrics,
    RunMgrMetrics,
    ServiceMetrics,
    ThermalMetrics,
)


@pytest.mark.parametrize(
    "member, value",
    [
        (ComponentType.RUN_MGR, 0x01),
        (ComponentType.POWER, 0x03),
        (ComponentType.THERMAL, 0x06),
        (ComponentType.SENSOR, 0x0A),
        (ComponentType.ACTUATOR, 0x0B),
        (ComponentType.TRANSCEIVER, 0x0C),
        (ComponentType.EPS, 0x0E),
    ],
)
def test_component_type_codes(member, value):
    assert int(member) == value
    assert ComponentType(value) is member


def test_component_types_are_contiguous():
    decoded = [ComponentType(code) for code in range(0x01, 0x0E + 1)]
    assert [int(c) for c in decoded] == list(range(0x01, 0x0E + 1))
    assert len(set(decoded)) == 14


def test_unknown_component_type_rejected():
    with pytest.raises(ValueError):
        ComponentType(0xFF)


def test_alert_enums_wire_values():
    assert AlertSeverity("critical") is AlertSeverity.CRITICAL
    assert AlertSeverity.WARNING.value == "warning"
    assert AlertStatus("resolved") is AlertStatus.RESOLVED
    assert AlertStatus.FIRING.value == "firing"


def test_alert_without_status_is_firing():
    event = AlertEvent(alert_id="a1")
    assert event.is_firing() is True
    assert event.is_resolved() is False


def test_alert_firing_status():
    event = AlertEvent(alert_id="a1", status=AlertStatus.FIRING)
    assert event.is_firing() is True
    assert event.is_resolved() is False


def test_alert_resolved_status():
    event = AlertEvent(alert_id="a1", status=AlertStatus.RESOLVED)
    assert event.is_firing() is False
    assert event.is_resolved() is True


def test_alert_mutable_defaults_are_independent():
    first = AlertEvent()
    second = AlertEvent()
    first.related_alerts.append("x")
    first.metadata["k"] = 1
    assert second.related_alerts == []
    assert second.metadata == {}


def test_thermal_has_ten_temperature_points():
    metrics = ThermalMetrics()
    assert metrics.thermal_temps == [0.0] * 10
    other = ThermalMetrics()
    metrics.thermal_temps[2] = 60.0
    assert other.thermal_temps[2] == 0.0


def test_container_cpu_usage_default_independent():
    a = ContainerMetrics(id="c1")
    b = ContainerMetrics(id="c2")
    a.cpu_usage.total = 95.0
    assert b.cpu_usage.total == 0.0
    assert a.failed_message is None


def test_metrics_set_holds_lists():
    node = NodeMetrics(id="node-001", status="online", cpu_usage=88.5)
    service = ServiceMetrics(id="service-001", healthy=False)
    container = ContainerMetrics(id="container-001", cpu_usage=CPUUsage(total=50.0))
    metrics_set = MicroServiceMetricsSet(
        node_metrics=[node], container_metrics=[container], service_metrics=[service]
    )
    assert metrics_set.node_metrics[0].cpu_usage == 88.5
    assert metrics_set.container_metrics[0].cpu_usage.total == 50.0
    assert metrics_set.service_metrics[0].business_check_fail == 0
    assert MicroServiceMetricsSet().node_metrics == []


def test_business_metrics_wraps_component_data():
    power = PowerMetrics(battery_voltage=25.0, cpu_voltage=3.3)
    business = BusinessMetrics(component_type=ComponentType.POWER, timestamp=7, data=power)
    assert business.component_type == 0x03
    assert business.data.battery_voltage == 25.0
    assert business.data.fault_codes is None


def test_run_mgr_payload_independent():
    a = RunMgrMetrics()
    b = RunMgrMetrics()
    a.payload["x"] = 1
    assert b.payload == {}


def test_dataclass_equality():
    assert NodeMetrics(id="n", status="online") == NodeMetrics(id="n", status="online")
    assert NodeMetrics(id="n") != NodeMetrics(id="m")