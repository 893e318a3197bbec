import json

import pytest

from healthmon.ecsm_types import (
    CPUUsage,
    ContainerInfo,
    ContainerList,
    EcsImageConfig,
    ImageSpec,
    ImageVSOA,
    KernelObject,
    ListContainersByNodeOptions,
    NodeDetailsByID,
    NodeInfo,
    NodeList,
    NodeSpec,
    NodeStatus,
    NodeStatusResponse,
    NodeTimeInfo,
    Platform,
    ProvisionListRow,
    ServiceGet,
    ServiceList,
    ServiceStatistics,
    UpdateServiceRequest,
    ValidateNameOptions,
)

CONTAINER_JSON = {
    "id": "c-1",
    "taskId": "task-1",
    "name": "demo",
    "status": "running",
    "uptime": 3600,
    "failedMessage": None,
    "restartCnt": 5,
    "cpuUsage": {"total": 50.0, "cores": [40.0, 60.0]},
    "memoryLimit": 1000000000,
    "memoryUsage": 500000000,
    "imageOS": "sylixos",
    "unknownKey": "ignored",
}


def test_container_info_from_dict_maps_keys():
    info = ContainerInfo.from_dict(CONTAINER_JSON)
    assert info.task_id == "task-1"
    assert info.restart_count == 5
    assert info.cpu_usage == CPUUsage(total=50.0, cores=[40.0, 60.0])
    assert info.failed_message is None
    assert info.image_os == "sylixos"
    assert info.memory_usage == 500000000


def test_container_info_round_trip_through_json():
    info = ContainerInfo.from_dict(CONTAINER_JSON)
    encoded = json.loads(json.dumps(info.to_dict()))
    assert ContainerInfo.from_dict(encoded) == info


def test_container_info_to_dict_uses_api_keys():
    encoded = ContainerInfo(id="c-1", restart_count=2).to_dict()
    assert encoded["restartCnt"] == 2
    assert encoded["failedMessage"] is None
    assert encoded["cpuUsage"] == {"total": 0.0, "cores": None}
    assert "restart_count" not in encoded


def test_container_list_reads_items_from_list_key():
    page = ContainerList.from_dict(
        {"total": 2, "pageNum": 1, "pageSize": 50,
         "list": [{"id": "a"}, {"id": "b"}]}
    )
    assert page.total == 2
    assert [c.id for c in page.items] == ["a", "b"]


def test_wrong_value_type_raises():
    with pytest.raises(ValueError):
        ContainerInfo.from_dict({"uptime": "long"})


def test_int_field_rejects_fraction():
    with pytest.raises(ValueError):
        ContainerInfo.from_dict({"restartCnt": 1.5})


def test_non_object_raises():
    with pytest.raises(ValueError):
        ContainerList.from_dict("success")


def test_nested_list_item_type_error_raises():
    with pytest.raises(ValueError):
        ContainerList.from_dict({"list": [{"id": 7}]})


def test_node_status_keeps_cpu_usage_raw():
    offline = NodeStatus.from_dict({"id": "n1", "status": "offline", "cpuUsage": 0})
    online = NodeStatus.from_dict(
        {"id": "n2", "cpuUsage": {"total": 88.5, "cores": [88.5]}}
    )
    assert offline.cpu_usage == 0
    assert online.cpu_usage == {"total": 88.5, "cores": [88.5]}


def test_node_status_nested_and_float_widening():
    status = NodeStatus.from_dict(
        {
            "id": "n1",
            "diskTotal": 100,
            "net": [{"networkName": "en1", "upNet": 1.5, "downNet": 2}],
            "time": {"current": 1700000000, "timezone": "UTC"},
        }
    )
    assert status.disk_total == 100.0
    assert isinstance(status.disk_total, float)
    assert status.net[0].network_name == "en1"
    assert status.net[0].down_net == 2.0
    assert status.time.current == 1700000000
    assert status.time.timezone == "UTC"


def test_null_struct_keeps_default():
    status = NodeStatus.from_dict({"id": "n1", "time": None, "net": None})
    assert status.time == NodeTimeInfo()
    assert status.net is None


def test_node_status_response_nodes():
    response = NodeStatusResponse.from_dict(
        {"nodes": [{"id": "n1"}, {"id": "n2", "processCount": 150}]}
    )
    assert [n.id for n in response.nodes] == ["n1", "n2"]
    assert response.nodes[1].process_count == 150


def test_node_list_and_info():
    page = NodeList.from_dict(
        {"total": 1, "list": [{"id": "n1", "tls": True, "upTime": 12}]}
    )
    assert page.total == 1
    assert page.items[0].tls is True
    assert page.items[0].up_time == 12.0


def test_node_info_password_omitted_when_empty():
    password = "password"
    assert "password" not in NodeInfo(id="n1").to_dict()
    assert NodeInfo(id="n1", password=password).to_dict()["password"] == "password"


def test_node_details_password_always_encoded():
    details = NodeDetailsByID.from_dict({"id": "n1", "ecsdVersion": "1.0"})
    assert details.ecsd_version == "1.0"
    assert details.to_dict()["password"] == ""


def test_service_get_nested_image():
    service = ServiceGet.from_dict(
        {
            "id": "s1",
            "healthy": True,
            "containerStatusGroup": ["running", "exited"],
            "image": {
                "ref": "app:1",
                "action": "run",
                "config": {"platform": {"os": "sylixos", "arch": "arm64"}},
                "vsoa": {"port": 3001},
            },
            "nodeList": [{"nodeId": "n1", "nodeName": "node"}],
        }
    )
    assert service.healthy is True
    assert service.container_status_group == ["running", "exited"]
    assert service.image.config.platform == Platform(os="sylixos", arch="arm64")
    assert service.image.vsoa.port == 3001
    assert service.node is None
    assert service.node_list[0].node_id == "n1"


def test_image_spec_omits_empty_optional_fields():
    encoded = ImageSpec(ref="app:1", action="load").to_dict()
    assert encoded == {"ref": "app:1", "action": "load", "config": None}


def test_image_spec_round_trip():
    spec = ImageSpec(
        ref="app:1",
        action="run",
        config=EcsImageConfig(hostname="host"),
        vsoa=ImageVSOA(port=0, health_path="/health"),
        pull_policy="always",
    )
    assert ImageSpec.from_dict(spec.to_dict()) == spec


def test_vsoa_zero_port_is_kept():
    encoded = ImageVSOA(port=0).to_dict()
    assert encoded == {"port": 0}


def test_update_request_factor_pointer_semantics():
    without = UpdateServiceRequest(id="s1", name="svc").to_dict()
    with_zero = UpdateServiceRequest(id="s1", name="svc", factor=0).to_dict()
    assert "factor" not in without
    assert "policy" not in without
    assert with_zero["factor"] == 0
    assert with_zero["node"] == {"names": None}


def test_update_request_carries_node_names():
    request = UpdateServiceRequest(
        id="s1", name="svc", node=NodeSpec(names=["a", "b"]), policy="static"
    )
    encoded = request.to_dict()
    assert encoded["node"] == {"names": ["a", "b"]}
    assert encoded["policy"] == "static"


def test_service_list_rows():
    page = ServiceList.from_dict(
        {
            "total": 1,
            "list": [
                {
                    "id": "s1",
                    "errorInstance": [
                        {"containerId": "c1", "status": False, "message": "boom"}
                    ],
                    "imageList": [{"name": "app", "tag": "1"}],
                }
            ],
        }
    )
    row = page.items[0]
    assert isinstance(row, ProvisionListRow)
    assert row.error_instances[0].message == "boom"
    assert row.image_list[0].tag == "1"


def test_service_statistics():
    stats = ServiceStatistics.from_dict({"total": 4, "health": 3})
    assert (stats.total, stats.health) == (4, 3)


def test_kernel_object_omits_optional_limits():
    encoded = KernelObject(thread_limit=10).to_dict()
    assert encoded["threadLimit"] == 10
    assert "rmsLimit" not in encoded
    assert encoded["timerLimit"] == 0


def test_list_options_key_omitempty():
    opts = ListContainersByNodeOptions(page_num=1, page_size=50, node_ids=["n1"])
    assert opts.to_dict() == {"pageNum": 1, "pageSize": 50, "nodeIds": ["n1"]}
    assert ValidateNameOptions(name="svc").to_dict() == {"name": "svc"}