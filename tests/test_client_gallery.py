"""Tests for optimistic deletes and tombstone reconciliation."""
import httpx
import pytest

from headshot_intake.client.gallery import MAX_IMAGES, ImageGallery
from headshot_intake.client.tombstones import JsonFileTombstoneStore, storage_key


def http_error(status):
    request = httpx.Request("DELETE", "http://intake.test/images/x")
    return httpx.HTTPStatusError("error", request=request, response=httpx.Response(status, request=request))


class FakeApi:
    """Server that keeps images whose delete fails."""

    user_id = "user-1"

    def __init__(self, accepted=(), rejected=()):
        self.images = {i: "ACCEPTED" for i in accepted}
        self.images.update({i: "REJECTED" for i in rejected})
        self.fail_with = {}
        self.delete_calls = []
        self.uploads = []
        self.upload_statuses = []

    def list_all_images(self, status=None, limit=100):
        return [{"id": i, "status": s} for i, s in self.images.items() if status in (None, s)]

    def delete_image(self, image_id):
        self.delete_calls.append(image_id)
        if image_id in self.fail_with:
            raise self.fail_with[image_id]
        if image_id not in self.images:
            raise http_error(404)
        del self.images[image_id]
        return {"success": True}

    def upload_image(self, file):
        self.uploads.append(file)
        status = self.upload_statuses.pop(0)
        if isinstance(status, Exception):
            raise status
        return {"success": True, "data": {"id": f"new-{len(self.uploads)}", "status": status}}


@pytest.fixture
def tombstones(tmp_path):
    return JsonFileTombstoneStore(str(tmp_path / "state"))


def gallery_for(api, tombstones):
    gallery = ImageGallery(api, tombstones)
    gallery.refresh()
    return gallery


def visible_ids(gallery):
    return {img["id"] for img in gallery.visible_images}


class TestDelete:
    def test_success(self, tombstones):
        api = FakeApi(accepted=["a", "b"])
        gallery = gallery_for(api, tombstones)

        outcome = gallery.delete("a")

        assert outcome.removed_remotely is True
        assert visible_ids(gallery) == {"b"}
        assert tombstones.load("user-1") == {"a"}

    def test_server_failure_keeps_image_hidden(self, tombstones):
        api = FakeApi(accepted=["x", "y"])
        api.fail_with["x"] = http_error(500)
        gallery = gallery_for(api, tombstones)

        outcome = gallery.delete("x")
        gallery.refresh()

        assert outcome.removed_remotely is False
        assert "remain hidden" in outcome.message
        assert "x" in api.images  # still on the server
        assert visible_ids(gallery) == {"y"}

    def test_not_found_is_informational(self, tombstones):
        api = FakeApi(accepted=["a"])
        gallery = gallery_for(api, tombstones)
        del api.images["a"]

        outcome = gallery.delete("a")

        assert outcome.removed_remotely is False
        assert outcome.error is None
        assert outcome.message == "Image removed successfully."

    def test_network_error_is_swallowed(self, tombstones):
        api = FakeApi(rejected=["r"])
        api.fail_with["r"] = httpx.ConnectError("connection refused")
        gallery = gallery_for(api, tombstones)

        outcome = gallery.delete("r")

        assert "connection refused" in outcome.error
        assert visible_ids(gallery) == set()
        assert tombstones.load("user-1") == {"r"}

    def test_missing_id(self, tombstones):
        with pytest.raises(ValueError):
            gallery_for(FakeApi(), tombstones).delete("")

    def test_tombstones_survive_restart(self, tombstones):
        api = FakeApi(accepted=["x"])
        api.fail_with["x"] = http_error(500)
        gallery_for(api, tombstones).delete("x")

        fresh = gallery_for(api, tombstones)
        assert visible_ids(fresh) == set()


class TestDeleteAll:
    def test_continues_through_failures(self, tombstones):
        api = FakeApi(accepted=["a", "b", "c"], rejected=["d"])
        api.fail_with["b"] = http_error(500)
        api.fail_with["d"] = RuntimeError("boom")
        gallery = gallery_for(api, tombstones)

        summary = gallery.delete_all()

        assert sorted(api.delete_calls) == ["a", "b", "c", "d"]
        assert (summary.succeeded, summary.failed) == (2, 2)
        assert summary.message == "Deleted 2 images successfully (2 failed but were removed locally)."
        gallery.refresh()
        assert gallery.visible_images == []

    def test_nothing_to_delete(self, tombstones):
        summary = gallery_for(FakeApi(), tombstones).delete_all()
        assert summary.message == "No images to delete."


class TestReset:
    def test_reset_clears_tombstones_only(self, tombstones):
        api = FakeApi(accepted=["x", "y"])
        api.fail_with["x"] = http_error(500)
        gallery = gallery_for(api, tombstones)
        gallery.delete("x")

        gallery.reset()

        assert tombstones.load("user-1") == set()
        assert visible_ids(gallery) == {"x", "y"}
        assert api.delete_calls == ["x"]


class TestTombstoneStore:
    def test_per_user_files(self, tmp_path, tombstones):
        tombstones.save("user-1", {"a"})
        tombstones.save("user-2", {"b"})
        assert tombstones.load("user-1") == {"a"}
        assert (tmp_path / "state" / f"{storage_key('user-2')}.json").read_text() == '["b"]'

    def test_corrupt_state_loads_empty(self, tmp_path, tombstones):
        (tmp_path / "state").mkdir()
        (tmp_path / "state" / "deleted-images-user-1.json").write_text("{not json")
        assert tombstones.load("user-1") == set()

    def test_clear_missing_is_fine(self, tombstones):
        tombstones.clear("nobody")


class TestUpload:
    def test_sorted_into_lists(self, tombstones):
        api = FakeApi()
        api.upload_statuses = ["ACCEPTED", "REJECTED", http_error(500)]
        gallery = gallery_for(api, tombstones)
        progress = []

        report = gallery.upload([("a.png", b"1", "image/png")] * 3, on_progress=lambda i, n: progress.append((i, n)))

        assert (report.accepted, report.rejected, report.failed) == (1, 1, 1)
        assert progress == [(0, 3), (1, 3), (2, 3)]
        assert len(gallery.accepted) == 1
        assert len(gallery.rejected) == 1

    def test_capped_at_max_accepted(self, tombstones):
        api = FakeApi(accepted=[f"a{i}" for i in range(MAX_IMAGES - 1)])
        api.upload_statuses = ["ACCEPTED"]
        gallery = gallery_for(api, tombstones)

        report = gallery.upload([("a.png", b"1", "image/png")] * 3)

        assert len(api.uploads) == 1
        assert report.skipped == 2
        assert gallery.is_complete
