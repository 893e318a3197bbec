# healthmon

Building blocks for health monitoring:

* **Business telemetry decoding** (`healthmon.receiver`): binary packets from
  the onboard component services (power, thermal, communication, actuators and
  others) become typed metric objects.
* **ECSM API data models** (`healthmon.ecsm_types`): dataclasses for the
  node, container and service objects of the ECSM container management API.
  Each one converts from and to the API's JSON shape.
* **Metric and alert models** (`healthmon.models`): node, container, service
  and business metrics, plus `AlertEvent`.
* **State tracking** (`healthmon.state_manager`, `healthmon.state_types`): the
  latest value of every metric, a ring-buffered history, alert on/off states
  and snapshots kept in a key-value store.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To install the test tools as well:

```
pip install .[test]
```

## Business packets

A packet has this layout:

| Bytes | Content |
| --- | --- |
| 0 | component type (`ComponentType`) |
| 1–2 | big-endian payload length |
| 3… | payload |

`parse_packet` decodes one packet into a `BusinessMetrics`. Its `data` field
holds the metrics class for that component, such as `PowerMetrics`,
`ThermalMetrics` or `EPSMetrics`:

```python
from healthmon.models import ComponentType
from healthmon.receiver import PacketError, parse_packet

packet = bytes([ComponentType.EPS, 0x00, 0x04, 0x5D, 0xC0, 0x05, 0xDC])
metrics = parse_packet(packet)
print(metrics.data.voltage, metrics.data.current)   # 24.0 1.5
```

`PacketError` is raised in these cases:

* the packet is shorter than three bytes;
* the declared length is longer than the payload;
* the component type is unknown.

If a payload is too short for its component, `data` is set to an empty dict.

`Receiver` queues packets passed to `submit()`, which accepts up to 100 at a
time and blocks when the queue is full. After `start()`, a background thread
parses the queued packets. Each parsed result goes to the object given to the
constructor, through its `handle_business_metrics(metrics)` method. Packets that
fail to parse are logged and dropped. `stop()` ends the thread.

```python
from healthmon.receiver import Receiver

class Printer:
    def handle_business_metrics(self, metrics):
        print(metrics.component_type, metrics.data)

receiver = Receiver(Printer())
receiver.start()
receiver.submit(packet)
...
receiver.stop()
```

## ECSM data models

```python
from healthmon.ecsm_types import ContainerInfo, NodeStatus

container = ContainerInfo.from_dict({"id": "c1", "taskId": "t1", "restartCnt": 2})
print(container.task_id, container.restart_count)   # t1 2
print(container.to_dict()["restartCnt"])            # 2
```

How decoding works:

* unknown keys are ignored;
* a missing or `null` key leaves the field at its default;
* a value of the wrong JSON type raises `ValueError`.

When encoding, fields marked optional by the API are left out if they are empty.

## State manager

```python
from healthmon.models import NodeMetrics
from healthmon.state_manager import MemoryStore, StateManager
from healthmon.state_types import MetricType, NodeMetric

with StateManager() as manager:
    manager.update_metric(NodeMetric(data=NodeMetrics(id="node-001", status="online"),
                                     timestamp=1_700_000_000))
    latest = manager.get_latest_state(MetricType.NODE, "node-001")
    history = manager.query_history(MetricType.NODE, "node-001", 60)
    should_send, firing = manager.check_and_update_alert_state("node-001:cpu", True)
```

* `get_latest_state` returns the latest metric, or `None` if there is none.
* `query_history` takes a `timedelta` or a number of seconds. Each metric's
  history holds up to 599 entries.
* `check_and_update_alert_state` reports `should_send` as true only when an
  alert is new or its state has changed.
* `get_stats` returns counts of stored states, history buffers and tracked
  alerts.

Pass a `KeyValueStore` to `StateManager` to enable persistence. The manager
then does the following:

* at start-up, restores the newest snapshot found in the store;
* saves a snapshot in a background thread every `snapshot_interval` seconds
  (60 by default);
* on `close()`, saves a final snapshot and closes the store.

`cleanup_expired_history` removes snapshots older than ten minutes. Without a
store, the manager keeps everything in memory only.

## What this package does not do

* It has no HTTP client for the ECSM API. It provides the request and response
  models, but you have to do the fetching yourself.
* It does not check metrics against thresholds or generate alerts. It tracks
  alert states, and `AlertEvent` describes an alert, but no module decides when
  an alert fires.
* Its only `KeyValueStore` is the in-process `MemoryStore`. For durable
  snapshots, subclass `KeyValueStore` and implement `put`, `get_prefix`,
  `delete` and `close`.
* It provides no command-line program.