from nerdctld.MODELS.records import (
    ContainerRecord, InfoRecord, NetworkRecord, VersionRecord, VolumeRecord, split_labels, split_list,
)

def test_split_helpers():
    assert split_labels("a=b,c=d,flag") == {"a": "b", "c": "d", "flag": ""}
    assert split_labels({"a": "b", "n": None}) == {"a": "b", "n": ""}
    assert split_labels("") == {}
    assert split_list("web, db") == ["web", "db"]
    assert split_list(["web"]) == ["web"]
    assert split_list(None) == []

def test_container_record_names_and_labels():
    record = ContainerRecord.model_validate({
        "ID": "c1", "Names": "web", "CreatedAt": "2024-03-01 12:00:00 +0000 UTC",
        "Labels": "com.example=1,tier=front",
    })
    assert record.names == ["web"]
    assert record.labels == {"com.example": "1", "tier": "front"}

    record = ContainerRecord.model_validate({
        "ID": "c2", "Names": ["a", "b"], "CreatedAt": "2024-03-01 12:00:00 +0000 UTC",
        "Labels": {"x": "y"},
    })
    assert record.names == ["a", "b"]
    assert record.labels == {"x": "y"}

def test_volume_record_size():
    assert VolumeRecord.model_validate({"Name": "data", "Size": 4096}).size == "4096 B"
    assert VolumeRecord.model_validate({"Name": "data", "Size": "4.0 KiB"}).size == "4.0 KiB"
    assert VolumeRecord.model_validate({"Name": "data"}).size == ""

def test_network_record_id_spellings():
    assert NetworkRecord.model_validate({"ID": "17f29b", "Name": "bridge"}).id == "17f29b"
    assert NetworkRecord.model_validate({"Id": "17f29b", "Name": "bridge"}).id == "17f29b"
    record = NetworkRecord.model_validate({"ID": None, "Name": "host", "Labels": "", "IPAM": None})
    assert record.id == ""
    assert record.ipam == {}

def test_info_record():
    record = InfoRecord.model_validate({
        "ID": "abc", "Name": "lima", "NCPU": 4, "MemTotal": 4096, "OSType": "linux",
        "CPUShares": True, "BridgeNfIp6tables": True, "Warnings": None, "Extra": "ignored",
    })
    assert record.n_cpu == 4
    assert record.cpu_shares is True
    assert record.bridge_nf_ip6tables is True
    assert record.warnings == []

def test_version_record():
    record = VersionRecord.model_validate({
        "Client": {
            "Version": "v1.7.6", "GitCommit": "", "GoVersion": "go1.21.6",
            "Os": "linux", "Arch": "amd64",
            "Components": [{"Name": "buildctl", "Version": "v0.12.5", "Details": None}],
        },
        "Server": None,
    })
    assert record.client.git_commit is None
    assert record.client.components[0].details == {}
    assert record.server == {}
