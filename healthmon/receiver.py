"""Business packet receiver: accepts raw packets, parses and hands them on.

Packet layout: byte 0 is the component type, bytes 1-2 the payload length
(big-endian uint16), followed by the payload.
"""

from __future__ import annotations

import logging
import queue
import struct
import threading
import time
from typing import Any, Callable, Protocol

from healthmon.models import (
    ActuatorMetrics,
    AttCtrlMetrics,
    BusinessMetrics,
    CommMetrics,
    ComponentType,
    EPSMetrics,
    MeasureMetrics,
    OpticalMetrics,
    PayloadMetrics,
    PowerMetrics,
    RailCtrlMetrics,
    RunMgrMetrics,
    SensorMetrics,
    ThermalMetrics,
    ThrusterMetrics,
    TransceiverMetrics,
)

logger = logging.getLogger(__name__)

_HEADER = struct.Struct(">BH")
_QUEUE_SIZE = 100


class PacketError(ValueError):
    """A business packet could not be accepted or parsed."""


class MetricsHandler(Protocol):
    def handle_business_metrics(self, metrics: BusinessMetrics) -> None: ...


def _now() -> int:
    return int(time.time())


def _parse_run_mgr(p: bytes) -> Any:
    if len(p) < 5:
        return None
    temp, volt = struct.unpack_from(">HH", p)
    return RunMgrMetrics(
        timestamp=_now(),
        temperature=temp / 10.0,
        voltage=volt / 1000.0,
        status_code=p[4],
        payload={},
    )


def _parse_comm(p: bytes) -> Any:
    if len(p) < 16:
        return None
    if len(p) < 18:
        raise PacketError("communication payload truncated before command count")
    snr, rate, can, serial, air, parity, header, length, reset, cmds = (
        struct.unpack_from(">BHBBBHHHHI", p)
    )
    return CommMetrics(
        timestamp=_now(),
        snr=snr,
        rate=rate,
        can_status=can,
        serial_status=serial,
        air_to_air_status=air,
        parity_error_count=parity,
        frame_header_error_count=header,
        frame_length_error_count=length,
        serial_reset_count=reset,
        receive_cmd_count=cmds,
    )


def _parse_power(p: bytes) -> Any:
    if len(p) < 14:
        return None
    values = [v / 1000.0 for v in struct.unpack_from(">7H", p)]
    return PowerMetrics(
        timestamp=_now(),
        power_module_12v=values[0],
        battery_voltage=values[1],
        bus_voltage=values[2],
        cpu_voltage=values[3],
        thermal_ref_voltage=values[4],
        bracket_12v_current=values[5],
        load_current=values[6],
    )


def _parse_rail_ctrl(p: bytes) -> Any:
    if len(p) < 1:
        return None
    return RailCtrlMetrics(timestamp=_now(), orbit_mode=p[0])


def _parse_payload(p: bytes) -> Any:
    if len(p) < 1:
        return None
    return PayloadMetrics(timestamp=_now(), work_mode=p[0])


def _parse_thermal(p: bytes) -> Any:
    if len(p) < 31:
        return None
    temps = [v / 10.0 for v in struct.unpack_from(">15h", p)]
    switches = p[30]
    return ThermalMetrics(
        timestamp=_now(),
        thermal_temps=temps[:10],
        battery_temp1=temps[10],
        battery_temp2=temps[11],
        platform_thermal_temp=temps[12],
        battery_thermal_temp=temps[13],
        tank_thermal_temp=temps[14],
        platform_heater_switch=bool(switches & 0x01),
        battery_heater_switch=bool(switches & 0x02),
        tank_heater_switch=bool(switches & 0x04),
    )


def _parse_att_ctrl(p: bytes) -> Any:
    if len(p) < 1:
        return None
    return AttCtrlMetrics(timestamp=_now(), control_mode=p[0])


def _parse_measure(p: bytes) -> Any:
    if len(p) < 4:
        return None
    (value,) = struct.unpack_from(">I", p)
    return MeasureMetrics(timestamp=_now(), sensor_value=value)


def _parse_optical(p: bytes) -> Any:
    if len(p) < 2:
        return None
    (current,) = struct.unpack_from(">H", p)
    return OpticalMetrics(timestamp=_now(), photo_current=current)


def _parse_sensor(p: bytes) -> Any:
    if len(p) < 6:
        return None
    x, y, z = struct.unpack_from(">3h", p)
    return SensorMetrics(timestamp=_now(), acc_x=x, acc_y=y, acc_z=z)


def _parse_actuator(p: bytes) -> Any:
    if len(p) < 6:
        return None
    x, y, z = struct.unpack_from(">3h", p)
    return ActuatorMetrics(
        timestamp=_now(), wheel_speed_x=x, wheel_speed_y=y, wheel_speed_z=z
    )


def _parse_transceiver(p: bytes) -> Any:
    if len(p) < 7:
        return None
    (rssi,) = struct.unpack_from(">b", p, 6)
    return TransceiverMetrics(
        timestamp=_now(),
        transmit_power=p[0],
        telemetry_encrypt_status=p[1],
        telecontrol_encrypt_status=p[2],
        transmit_switch=p[3],
        info_channel_snr=p[4],
        receive_rssi=rssi,
    )


def _parse_thruster(p: bytes) -> Any:
    if len(p) < 5:
        return None
    fuel, switch, pressure = struct.unpack_from(">HBH", p)
    return ThrusterMetrics(
        timestamp=_now(),
        fuel_level=fuel,
        pipeline_switch=switch,
        pressure_sensor=pressure,
    )


def _parse_eps(p: bytes) -> Any:
    if len(p) < 4:
        return None
    volt, curr = struct.unpack_from(">HH", p)
    return EPSMetrics(timestamp=_now(), voltage=volt / 1000.0, current=curr / 1000.0)


_PARSERS: dict[int, Callable[[bytes], Any]] = {
    ComponentType.RUN_MGR: _parse_run_mgr,
    ComponentType.COMM: _parse_comm,
    ComponentType.POWER: _parse_power,
    ComponentType.RAIL_CTRL: _parse_rail_ctrl,
    ComponentType.PAYLOAD: _parse_payload,
    ComponentType.THERMAL: _parse_thermal,
    ComponentType.ATT_CTRL: _parse_att_ctrl,
    ComponentType.MEASURE: _parse_measure,
    ComponentType.OPTICAL: _parse_optical,
    ComponentType.SENSOR: _parse_sensor,
    ComponentType.ACTUATOR: _parse_actuator,
    ComponentType.TRANSCEIVER: _parse_transceiver,
    ComponentType.THRUSTER: _parse_thruster,
    ComponentType.EPS: _parse_eps,
}


def parse_packet(packet: bytes) -> BusinessMetrics:
    """Parse one business packet.

    A payload too short for its component leaves ``data`` as an empty dict.
    Raises :class:`PacketError` for malformed or unknown packets.
    """
    packet = bytes(packet)
    if len(packet) < _HEADER.size:
        raise PacketError("invalid business packet")
    component, length = _HEADER.unpack_from(packet)
    if length > len(packet) - _HEADER.size:
        raise PacketError("length mismatch in business packet")
    payload = packet[_HEADER.size:_HEADER.size + length]

    parser = _PARSERS.get(component)
    if parser is None:
        raise PacketError(f"unknown business packet type: 0x{component:02X}")

    data = parser(payload)
    return BusinessMetrics(
        component_type=ComponentType(component),
        timestamp=_now(),
        data={} if data is None else data,
    )


class Receiver:
    """Queues submitted packets and parses them on a background thread."""

    def __init__(self, dispatcher: MetricsHandler) -> None:
        self.dispatcher = dispatcher
        self._inbox: queue.Queue[bytes | None] = queue.Queue(maxsize=_QUEUE_SIZE)
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def submit(self, data: bytes) -> None:
        """Queue a packet; blocks while the queue is full."""
        if len(data) < _HEADER.size:
            raise PacketError("invalid business packet")
        self._inbox.put(bytes(data))

    def start(self) -> None:
        """Start processing queued packets in a daemon thread."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background thread."""
        self._stopped.set()
        try:
            self._inbox.put_nowait(None)
        except queue.Full:
            pass
        if self._thread is not None:
            self._thread.join(timeout=5)

    def parse_packet(self, packet: bytes) -> BusinessMetrics:
        """Parse one business packet (see :func:`parse_packet`)."""
        return parse_packet(packet)

    def _run(self) -> None:
        while not self._stopped.is_set():
            packet = self._inbox.get()
            if packet is None or self._stopped.is_set():
                return
            try:
                metrics = self.parse_packet(packet)
            except PacketError as exc:
                logger.warning("business packet rejected: %s", exc)
                continue
            self.dispatcher.handle_business_metrics(metrics)