from kgoc.storage.hybrid_provider import MirroredCollection, local_id, newest_first


def _collection(remote, local):
    return MirroredCollection(remote, local, "things", "things", "Thing")


def test_create_writes_remote_and_mirror(remote, local):
    result = _collection(remote, local).create({"name": "a", "createdAt": "2024-01-01"}, "createThing")
    assert result.success and not result.fallback
    assert result.source == "remote"
    assert remote.get("things", result.id)["name"] == "a"
    assert local.get_json("things") == [{"name": "a", "createdAt": "2024-01-01", "id": result.id}]


def test_create_falls_back_to_mirror(failing_remote, local):
    result = _collection(failing_remote, local).create({"name": "a"}, "createThing")
    assert result.success and result.fallback
    assert result.source == "local"
    assert result.id.startswith("local_")
    stored = local.get_json("things")
    assert stored[0]["isLocal"] is True
    assert stored[0]["id"] == result.id


def test_list_all_refreshes_mirror_from_remote(remote, local):
    local.set_json("things", [{"id": "stale"}])
    remote.add("things", {"createdAt": "2024-01-01"})
    result = _collection(remote, local).list_all(10, "list")
    assert result.count == 1
    assert [i["id"] for i in local.get_json("things")] == [result.data[0]["id"]]


def test_list_all_fallback_is_newest_first_and_limited(failing_remote, local):
    local.set_json("things", [
        {"id": "1", "createdAt": "2024-01-01"},
        {"id": "3", "createdAt": "2024-03-01"},
        {"id": "2", "createdAt": "2024-02-01"},
    ])
    result = _collection(failing_remote, local).list_all(2, "list")
    assert result.success and result.fallback
    assert [i["id"] for i in result.data] == ["3", "2"]


def test_list_all_with_unreadable_mirror_is_empty(failing_remote, local):
    local.path.write_text("garbage", encoding="utf-8")
    result = _collection(failing_remote, local).list_all(10, "list")
    assert result.success
    assert result.source == "empty"
    assert result.data == []


def test_get_not_found(remote, local):
    result = _collection(remote, local).get("missing", "get")
    assert not result.success
    assert result.error == "not-found"


def test_get_falls_back_to_mirror(failing_remote, local):
    local.set_json("things", [{"id": "x1", "name": "cached"}])
    result = _collection(failing_remote, local).get("x1", "get")
    assert result.success and result.fallback
    assert result.data["name"] == "cached"


def test_get_with_nothing_anywhere_maps_to_network_error(failing_remote, local):
    result = _collection(failing_remote, local).get("x1", "get")
    assert not result.success
    assert result.error == "network-error"


def test_update_patches_remote_and_mirror(remote, local):
    things = _collection(remote, local)
    created = things.create({"name": "a"}, "create")
    things.update(created.id, {"name": "b"}, "update")
    assert remote.get("things", created.id)["name"] == "b"
    assert local.get_json("things")[0]["name"] == "b"


def test_update_fallback_marks_local(failing_remote, local):
    local.set_json("things", [{"id": "x1", "name": "a"}])
    result = _collection(failing_remote, local).update("x1", {"name": "b"}, "update")
    assert result.success and result.fallback
    assert local.get_json("things") == [{"id": "x1", "name": "b", "isLocal": True}]


def test_delete_fallback_removes_from_mirror(failing_remote, local):
    local.set_json("things", [{"id": "x1"}, {"id": "x2"}])
    result = _collection(failing_remote, local).delete("x1", "delete")
    assert result.success and result.fallback
    assert local.get_json("things") == [{"id": "x2"}]


def test_clear_local_only_keeps_remote(remote, local):
    things = _collection(remote, local)
    things.create({"name": "a"}, "create")
    result = things.clear(False, "clear")
    assert result.success and result.count == 0
    assert local.get_item("things") is None
    assert len(remote.query("things")) == 1


def test_helpers():
    assert local_id().startswith("local_")
    assert local_id() != local_id()
    items = [{"createdAt": "2024-01-01"}, {"createdAt": None}, {"createdAt": "2024-05-01"}]
    assert [i["createdAt"] for i in newest_first(items)] == ["2024-05-01", "2024-01-01", None]
