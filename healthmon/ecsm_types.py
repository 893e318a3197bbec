"""Request and response structures of the ECSM container management API.

Every structure decodes from, and encodes to, the JSON shape the API uses.
Decoding ignores unknown keys, keeps defaults for missing or null keys and
raises :class:`ValueError` when a value has the wrong JSON type.
"""

import types
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Union, get_args, get_origin


def _j(
    name: str,
    default: Any = None,
    *,
    factory: Any = None,
    omitempty: bool = False,
    nil_only: bool = False,
) -> Any:
    """Declare a field with its JSON key.

    ``omitempty`` drops zero values when encoding; ``nil_only`` drops only
    ``None`` (an optional number whose zero is still meaningful).
    """
    meta = {"json": name, "omitempty": omitempty or nil_only, "nil_only": nil_only}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


def _json_name(f: Any) -> str:
    return f.metadata.get("json", f.name)


def _non_none_arg(tp: Any) -> Any:
    return next(a for a in get_args(tp) if a is not type(None))


def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def _zero(tp: Any) -> Any:
    if _is_union(tp) or tp is Any:
        return None
    if get_origin(tp) in (list, dict):
        return None
    return tp()


def _decode(tp: Any, value: Any, where: str) -> Any:
    if _is_union(tp):
        return None if value is None else _decode(_non_none_arg(tp), value, where)
    if tp is Any:
        return value
    if value is None:
        return _zero(tp)
    origin = get_origin(tp)
    if origin is list:
        if not isinstance(value, list):
            raise ValueError(f"{where}: expected a list, got {type(value).__name__}")
        (item_type,) = get_args(tp)
        return [
            _decode(item_type, item, f"{where}[{pos}]")
            for pos, item in enumerate(value)
        ]
    if origin is dict:
        if not isinstance(value, Mapping):
            raise ValueError(f"{where}: expected an object, got {type(value).__name__}")
        return dict(value)
    if isinstance(tp, type) and issubclass(tp, _JsonModel):
        return tp.from_dict(value)
    if tp is bool:
        if isinstance(value, bool):
            return value
    elif tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif tp is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif tp is str:
        if isinstance(value, str):
            return value
    raise ValueError(
        f"{where}: cannot decode {type(value).__name__} into {getattr(tp, '__name__', tp)}"
    )


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict, tuple, bool, int, float)):
        return not value
    return False


def _encode(value: Any) -> Any:
    if isinstance(value, _JsonModel):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


class _JsonModel:
    """Mixin giving a dataclass JSON-style decoding and encoding."""

    @classmethod
    def from_dict(cls, data: Any) -> Any:
        """Build an instance from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError(
                f"cannot decode {type(data).__name__} into {cls.__name__}"
            )
        kwargs = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = _json_name(f)
            value = data.get(key)
            if value is None:
                continue
            kwargs[f.name] = _decode(f.type, value, f"{cls.__name__}.{key}")
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-serialisable form using the API's key names."""
        assert is_dataclass(self)
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.metadata.get("nil_only"):
                if value is None:
                    continue
            elif f.metadata.get("omitempty") and _is_empty(value):
                continue
            out[_json_name(f)] = _encode(value)
        return out


# ------------------------------------------------------------- containers

@dataclass
class CPUUsage(_JsonModel):
    """Container CPU usage."""

    total: float = _j("total", 0.0)
    cores: list[float] | None = _j("cores")


@dataclass
class ContainerInfo(_JsonModel):
    """A container as returned by the list and get container endpoints."""

    id: str = _j("id", "")
    task_id: str = _j("taskId", "")
    name: str = _j("name", "")
    status: str = _j("status", "")
    uptime: int = _j("uptime", 0)
    started_time: str = _j("startedTime", "")
    created_time: str = _j("createdTime", "")
    task_created_time: str = _j("taskCreatedTime", "")
    deploy_status: str = _j("deployStatus", "")
    failed_message: str | None = _j("failedMessage")
    restart_count: int = _j("restartCnt", 0)
    deploy_num: int = _j("deployNum", 0)
    cpu_usage: CPUUsage = _j("cpuUsage", factory=CPUUsage)
    memory_limit: int = _j("memoryLimit", 0)
    memory_usage: int = _j("memoryUsage", 0)
    memory_max_usage: int = _j("memoryMaxUsage", 0)
    size_usage: int = _j("sizeUsage", 0)
    size_limit: int = _j("sizeLimit", 0)
    service_id: str = _j("serviceId", "")
    service_name: str = _j("serviceName", "")
    node_id: str = _j("nodeId", "")
    address: str = _j("address", "")
    node_name: str = _j("nodeName", "")
    node_arch: str = _j("nodeArch", "")
    image_id: str = _j("imageId", "")
    image_name: str = _j("imageName", "")
    image_version: str = _j("imageVersion", "")
    image_os: str = _j("imageOS", "")
    image_arch: str = _j("imageArch", "")

    @classmethod
    def from_dict(cls, data: Any) -> "ContainerInfo":
        """Decode a container object."""
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Encode as the API's container object."""
        return super().to_dict()


@dataclass
class ContainerList(_JsonModel):
    """One page of containers."""

    total: int = _j("total", 0)
    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    items: list[ContainerInfo] | None = _j("list")

    @classmethod
    def from_dict(cls, data: Any) -> "ContainerList":
        """Decode a page of containers."""
        return super().from_dict(data)


@dataclass
class ListContainersByServiceOptions(_JsonModel):
    """Query for the containers of given services."""

    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    service_ids: list[str] | None = _j("serviceIds")
    key: str = _j("key", "", omitempty=True)


@dataclass
class ListContainersByNodeOptions(_JsonModel):
    """Query for the containers on given nodes."""

    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    node_ids: list[str] | None = _j("nodeIds")
    key: str = _j("key", "", omitempty=True)


# ------------------------------------------------------------------ nodes

@dataclass
class NodeListOptions:
    """Query parameters for listing nodes."""

    page_num: int = 0
    page_size: int = 0
    name: str = ""
    basic_info: bool = False


@dataclass
class NodeInfo(_JsonModel):
    """One node in the node list."""

    id: str = _j("id", "")
    address: str = _j("address", "")
    name: str = _j("name", "")
    password: str = _j("password", "", omitempty=True)
    status: str = _j("status", "")
    type: str = _j("type", "")
    tls: bool = _j("tls", False)
    container_total: int = _j("containerTotal", 0)
    container_running: int = _j("containerRunning", 0)
    container_ecsm_total: int = _j("containerEcsmTotal", 0)
    container_ecsm_running: int = _j("containerEcsmRunning", 0)
    up_time: float = _j("upTime", 0.0)
    created_time: str = _j("createdTime", "")
    arch: str = _j("arch", "")

    @classmethod
    def from_dict(cls, data: Any) -> "NodeInfo":
        """Decode a node list entry."""
        return super().from_dict(data)


@dataclass
class NodeList(_JsonModel):
    """One page of nodes."""

    total: int = _j("total", 0)
    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    items: list[NodeInfo] | None = _j("list")

    @classmethod
    def from_dict(cls, data: Any) -> "NodeList":
        """Decode a page of nodes."""
        return super().from_dict(data)


@dataclass
class NodeDetailsByID(_JsonModel):
    """Configuration of a single node."""

    id: str = _j("id", "")
    address: str = _j("address", "")
    name: str = _j("name", "")
    password: str = _j("password", "")
    tls: bool = _j("tls", False)
    type: str = _j("type", "")
    created_time: str = _j("createdTime", "")
    arch: str = _j("arch", "")
    ecsd_version: str = _j("ecsdVersion", "")

    @classmethod
    def from_dict(cls, data: Any) -> "NodeDetailsByID":
        """Decode a node's configuration."""
        return super().from_dict(data)


@dataclass
class NodeCPUUsage(_JsonModel):
    """CPU usage of an online node."""

    total: float = _j("total", 0.0)
    cores: list[float] | None = _j("cores")


@dataclass
class NodeNetInfo(_JsonModel):
    """Traffic on one network interface of a node."""

    network_name: str = _j("networkName", "")
    up_net: float = _j("upNet", 0.0)
    down_net: float = _j("downNet", 0.0)


@dataclass
class NodeTimeInfo(_JsonModel):
    """Clock and time zone of a node."""

    current: int = _j("current", 0)
    uptime: float = _j("uptime", 0.0)
    timezone: str = _j("timezone", "")
    timezone_name: str = _j("timezoneName", "")
    date: str = _j("date", "")


@dataclass
class NodeStatus(_JsonModel):
    """Runtime status of a node.

    ``cpu_usage`` is a number for offline nodes and an object for online
    ones; it is kept exactly as decoded.
    """

    id: str = _j("id", "")
    status: str = _j("status", "")
    memory_total: int = _j("memoryTotal", 0)
    memory_free: int = _j("memoryFree", 0)
    disk_total: float = _j("diskTotal", 0.0)
    disk_free: float = _j("diskFree", 0.0)
    cpu_usage: Any = _j("cpuUsage")
    uptime: float = _j("uptime", 0.0)
    process_count: int = _j("processCount", 0)
    container_total: int = _j("containerTotal", 0)
    container_running: int = _j("containerRunning", 0)
    container_ecsm_total: int = _j("containerEcsmTotal", 0)
    container_ecsm_running: int = _j("containerEcsmRunning", 0)
    net: list[NodeNetInfo] | None = _j("net")
    time: NodeTimeInfo = _j("time", factory=NodeTimeInfo)

    @classmethod
    def from_dict(cls, data: Any) -> "NodeStatus":
        """Decode a node status object."""
        return super().from_dict(data)


@dataclass
class NodeStatusResponse(_JsonModel):
    """Data of the node status endpoint."""

    nodes: list[NodeStatus] | None = _j("nodes")

    @classmethod
    def from_dict(cls, data: Any) -> "NodeStatusResponse":
        """Decode the node status endpoint's data."""
        return super().from_dict(data)


# --------------------------------------------------------------- services

@dataclass
class Platform(_JsonModel):
    os: str = _j("os", "")
    arch: str = _j("arch", "")


@dataclass
class Process(_JsonModel):
    args: list[str] | None = _j("args")
    env: list[str] | None = _j("env")
    cwd: str = _j("cwd", "")


@dataclass
class Root(_JsonModel):
    path: str = _j("path", "")
    readonly: bool = _j("readonly", False)


@dataclass
class Mount(_JsonModel):
    destination: str = _j("destination", "")
    source: str = _j("source", "")
    options: list[str] | None = _j("options")


@dataclass
class Device(_JsonModel):
    path: str = _j("path", "")
    access: str = _j("access", "")


@dataclass
class CPU(_JsonModel):
    highest_prio: int = _j("highestPrio", 0)
    lowest_prio: int = _j("lowestPrio", 0)


@dataclass
class Memory(_JsonModel):
    kheap_limit: int = _j("kheapLimit", 0)
    memory_limit_mb: int = _j("memoryLimitMB", 0)


@dataclass
class Disk(_JsonModel):
    limit_mb: int = _j("limitMB", 0)


@dataclass
class KernelObject(_JsonModel):
    """Kernel object limits of a container."""

    thread_limit: int = _j("threadLimit", 0)
    thread_pool_limit: int = _j("threadPoolLimit", 0)
    event_limit: int = _j("eventLimit", 0)
    event_set_limit: int = _j("eventSetLimit", 0)
    partition_limit: int = _j("partitionLimit", 0)
    region_limit: int = _j("regionLimit", 0)
    msg_queue_limit: int = _j("msgQueueLimit", 0)
    timer_limit: int = _j("timerLimit", 0)
    rms_limit: int = _j("rmsLimit", 0, omitempty=True)
    thread_var_limit: int = _j("threadVarLimit", 0, omitempty=True)
    posix_mqueue_limit: int = _j("posixMqueueLimit", 0, omitempty=True)
    dlopen_library_limit: int = _j("dlopenLibraryLimit", 0, omitempty=True)
    xsiipc_limit: int = _j("xsiipcLimit", 0, omitempty=True)
    socket_limit: int = _j("socketLimit", 0, omitempty=True)
    srtp_limit: int = _j("srtpLimit", 0, omitempty=True)
    device_limit: int = _j("deviceLimit", 0, omitempty=True)


@dataclass
class Resources(_JsonModel):
    cpu: CPU | None = _j("cpu")
    memory: Memory | None = _j("memory")
    disk: Disk | None = _j("disk")
    kernel_object: KernelObject | None = _j("kernelObject")


@dataclass
class Network(_JsonModel):
    ftpd_enable: bool = _j("ftpdEnable", False)
    telnetd_enable: bool = _j("telnetdEnable", False)


@dataclass
class SylixOS(_JsonModel):
    devices: list[Device] | None = _j("devices", omitempty=True)
    resources: Resources | None = _j("resources")
    network: Network | None = _j("network")
    commands: list[str] | None = _j("commands")


@dataclass
class EcsImageConfig(_JsonModel):
    """Runtime configuration of an image."""

    platform: Platform | None = _j("platform", omitempty=True)
    process: Process | None = _j("process", omitempty=True)
    root: Root | None = _j("root", omitempty=True)
    hostname: str = _j("hostname", "", omitempty=True)
    mounts: list[Mount] | None = _j("mounts", omitempty=True)
    sylixos: SylixOS | None = _j("sylixos", omitempty=True)


@dataclass
class ImageVSOA(_JsonModel):
    """Health check settings of an image."""

    password: str = _j("password", "", omitempty=True)
    port: int | None = _j("port", nil_only=True)
    health_path: str = _j("healthPath", "", omitempty=True)
    health_timeout: int | None = _j("healthTimeout", nil_only=True)
    health_retries: int | None = _j("healthRetries", nil_only=True)
    health_start_period: int | None = _j("healthStartPeriod", nil_only=True)
    health_interval: int | None = _j("healthInterval", nil_only=True)


@dataclass
class ImageSpec(_JsonModel):
    """Image a service runs; ``action`` is ``"load"`` or ``"run"``."""

    ref: str = _j("ref", "")
    action: str = _j("action", "")
    config: EcsImageConfig | None = _j("config")
    vsoa: ImageVSOA | None = _j("vsoa", omitempty=True)
    pull_policy: str = _j("pullPolicy", "", omitempty=True)
    auto_upgrade: str = _j("autoUpgrade", "", omitempty=True)

    @classmethod
    def from_dict(cls, data: Any) -> "ImageSpec":
        """Decode an image specification."""
        return super().from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Encode as the API's image object."""
        return super().to_dict()


@dataclass
class NodeSpec(_JsonModel):
    names: list[str] | None = _j("names")


@dataclass
class ServiceNodeInfo(_JsonModel):
    """A node a service is deployed on."""

    node_id: str = _j("nodeId", "")
    node_name: str = _j("nodeName", "")
    address: str = _j("address", "")


@dataclass
class ServiceGet(_JsonModel):
    """A single service as returned by the get service endpoint."""

    id: str = _j("id", "")
    name: str = _j("name", "")
    status: str = _j("status", "")
    container_status_group: list[str] | None = _j("containerStatusGroup")
    healthy: bool = _j("healthy", False)
    factor: int = _j("factor", 0)
    policy: str = _j("policy", "")
    instance_online: int = _j("instanceOnline", 0)
    instance_active: int = _j("instanceActive", 0)
    created_time: str = _j("createdTime", "")
    updated_time: str = _j("updatedTime", "")
    image: ImageSpec | None = _j("image")
    node: NodeSpec | None = _j("node", omitempty=True)
    node_list: list[ServiceNodeInfo] | None = _j("nodeList")

    @classmethod
    def from_dict(cls, data: Any) -> "ServiceGet":
        """Decode a service object."""
        return super().from_dict(data)


@dataclass
class ListServicesOptions(_JsonModel):
    """Query for listing services; ``image_id`` filters by image."""

    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    name: str = _j("name", "", omitempty=True)
    image_id: str = _j("imageId", "", omitempty=True)
    node_id: str = _j("nodeId", "", omitempty=True)
    label: str = _j("label", "", omitempty=True)


@dataclass
class ImageListEntry(_JsonModel):
    name: str = _j("name", "")
    os: str = _j("os", "")
    tag: str = _j("tag", "")


@dataclass
class ErrorInstance(_JsonModel):
    """An instance that failed to deploy."""

    container_id: str = _j("containerId", "")
    node_id: str = _j("nodeId", "")
    node_name: str = _j("nodeName", "")
    status: bool = _j("status", False)
    message: str = _j("message", "")


@dataclass
class ProvisionListRow(_JsonModel):
    """One row of the service list."""

    id: str = _j("id", "")
    name: str = _j("name", "")
    status: str = _j("status", "")
    updated_time: str = _j("updatedTime", "")
    created_time: str = _j("createdTime", "")
    image_list: list[ImageListEntry] | None = _j("imageList")
    node_list: list[ServiceNodeInfo] | None = _j("nodeList")
    container_status_group: list[str] | None = _j("containerStatusGroup")
    factor: int = _j("factor", 0)
    policy: str = _j("policy", "")
    error_instances: list[ErrorInstance] | None = _j("errorInstance")
    instance_online: int = _j("instanceOnline", 0)
    default_labels: list[str] | None = _j("defaultLabels")
    path_label: str = _j("pathLabel", "")

    @classmethod
    def from_dict(cls, data: Any) -> "ProvisionListRow":
        """Decode a service list row."""
        return super().from_dict(data)


@dataclass
class ServiceList(_JsonModel):
    """One page of services."""

    total: int = _j("total", 0)
    page_num: int = _j("pageNum", 0)
    page_size: int = _j("pageSize", 0)
    items: list[ProvisionListRow] | None = _j("list")

    @classmethod
    def from_dict(cls, data: Any) -> "ServiceList":
        """Decode a page of services."""
        return super().from_dict(data)


@dataclass
class UpdateServiceRequest(_JsonModel):
    """Payload for updating a service; ``policy`` is dynamic or static."""

    id: str = _j("id", "")
    name: str = _j("name", "")
    image: ImageSpec = _j("image", factory=ImageSpec)
    node: NodeSpec = _j("node", factory=NodeSpec)
    factor: int | None = _j("factor", nil_only=True)
    policy: str = _j("policy", "", omitempty=True)

    def to_dict(self) -> dict[str, Any]:
        """Encode as the update service payload."""
        return super().to_dict()


@dataclass
class ControlServicesResponse(_JsonModel):
    """Identifiers touched by a batch service operation."""

    ids: list[str] | None = _j("ids")


@dataclass
class RedeployRequest(_JsonModel):
    id: str = _j("id", "")


@dataclass
class ValidateNameOptions(_JsonModel):
    name: str = _j("name", "")
    id: str = _j("id", "", omitempty=True)


@dataclass
class RollBackRequest(_JsonModel):
    id: str = _j("id", "")
    record_id: str = _j("recordId", "")


@dataclass
class ServiceStatistics(_JsonModel):
    """Total number of services and how many are healthy."""

    total: int = _j("total", 0)
    health: int = _j("health", 0)

    @classmethod
    def from_dict(cls, data: Any) -> "ServiceStatistics":
        """Decode service statistics."""
        return super().from_dict(data)