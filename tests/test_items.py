import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from item_requests.services import item_request_service
from items.models import SharedItem
from items.services import items_service
from loops.services import loop_service

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.mark.django_db
class TestItemService:

    def test_create_defaults(self, alice):
        item = items_service.create_item(alice, "  Tent  ")

        assert item.name == "Tent"
        assert item.owner == alice
        assert item.is_available is True
        assert item.visible_to_all_loops is False
        assert item.image_url is None

    def test_name_required(self, alice):
        with pytest.raises(InvalidOperation):
            items_service.create_item(alice, "")

    def test_visibility_limited_to_own_loops(self, alice, carol, loop):
        with pytest.raises(InvalidOperation):
            items_service.create_item(carol, "Kayak", visible_to_loop_ids=[loop.pk])

        item = items_service.create_item(carol, "Kayak")
        with pytest.raises(InvalidOperation):
            items_service.update_item_visibility(item.pk, carol.pk, [loop.pk], False, False)

    def test_only_owner_updates(self, drill, bob):
        with pytest.raises(Forbidden):
            items_service.update_item(drill.pk, bob.pk, "Mine now", "", True, [], False, False)
        with pytest.raises(NotFound):
            items_service.update_item(999999, bob.pk, "Nothing", "", True, [], False, False)

    def test_items_in_loop(self, loop, alice, bob, carol, drill):
        hidden = items_service.create_item(alice, "Private Diary")
        everywhere = items_service.create_item(bob, "Wheelbarrow", visible_to_all_loops=True)
        outsider = items_service.create_item(carol, "Canoe", visible_to_all_loops=True)

        visible = set(items_service.get_items_by_loop(loop))

        assert visible == {drill, everywhere}
        assert hidden not in visible
        assert outsider not in visible

    def test_items_leave_with_their_owner(self, loop, alice, bob):
        wheelbarrow = items_service.create_item(bob, "Wheelbarrow", visible_to_all_loops=True)
        loop_service.remove_member(loop.pk, bob.pk, alice.pk)
        assert wheelbarrow not in items_service.get_items_by_loop(loop)

    def test_search_is_case_insensitive(self, loop, drill):
        assert list(items_service.get_items_by_loop(loop, search="CORDLESS")) == [drill]
        assert list(items_service.get_items_by_loop(loop, search="hammer")) == []

    def test_cannot_delete_lent_item(self, drill, alice, bob):
        item_request = item_request_service.create_request(drill.pk, bob)
        item_request_service.approve_request(item_request.pk, alice.pk)

        with pytest.raises(InvalidOperation):
            items_service.delete_item(drill.pk, alice.pk)

        item_request_service.complete_request(item_request.pk, alice.pk)
        items_service.delete_item(drill.pk, alice.pk)
        assert not SharedItem.objects.filter(pk=drill.pk).exists()


@pytest.mark.django_db
class TestItemImages:

    def test_upload_replaces_previous_image(self, drill, alice):
        first = items_service.update_item_image(
            drill.pk, alice.pk, SimpleUploadedFile("drill.png", PNG_BYTES, content_type="image/png")
        )
        first_name = first.image.name
        assert first_name.startswith("images/")
        assert first_name.endswith(".png")
        assert first.image_url == f"/uploads/{first_name}"

        second = items_service.update_item_image(
            drill.pk, alice.pk, SimpleUploadedFile("drill.JPG", PNG_BYTES, content_type="image/jpeg")
        )
        assert second.image.name.endswith(".jpg")
        assert not second.image.storage.exists(first_name)

    def test_rejects_bad_extension(self, drill, alice):
        with pytest.raises(InvalidOperation):
            items_service.update_item_image(
                drill.pk, alice.pk, SimpleUploadedFile("drill.bmp", PNG_BYTES, content_type="image/bmp")
            )

    def test_rejects_large_files(self, drill, alice, settings):
        settings.LENDINGLOOP = {**settings.LENDINGLOOP, "ITEM_IMAGE_MAX_BYTES": 32}
        with pytest.raises(InvalidOperation):
            items_service.update_item_image(
                drill.pk, alice.pk, SimpleUploadedFile("drill.png", PNG_BYTES, content_type="image/png")
            )

    def test_only_owner_uploads(self, drill, bob):
        with pytest.raises(Forbidden):
            items_service.update_item_image(
                drill.pk, bob.pk, SimpleUploadedFile("drill.png", PNG_BYTES, content_type="image/png")
            )


@pytest.mark.django_db
class TestItemApi:

    def test_create_and_list_mine(self, client_for, alice, loop):
        client = client_for(alice)
        response = client.post(
            "/api/items/",
            {"name": "Tent", "description": "Four person", "visible_to_loop_ids": [loop.pk]},
            format="json",
        )

        assert response.status_code == 201
        assert response.data["owner_id"] == alice.pk
        assert response.data["visible_to_loop_ids"] == [loop.pk]
        assert [i["name"] for i in client.get("/api/items/").data] == ["Tent"]

    def test_missing_name(self, client_for, alice):
        response = client_for(alice).post("/api/items/", {"description": "No name"}, format="json")
        assert response.status_code == 400

    def test_update_and_delete(self, client_for, alice, bob, drill):
        payload = {"name": "Drill Driver", "is_available": False, "visible_to_all_loops": True}

        assert client_for(bob).put(f"/api/items/{drill.pk}", payload, format="json").status_code == 403

        response = client_for(alice).put(f"/api/items/{drill.pk}", payload, format="json")
        assert response.status_code == 200
        assert response.data["name"] == "Drill Driver"
        assert response.data["is_available"] is False
        assert response.data["visible_to_loop_ids"] == []

        assert client_for(alice).delete(f"/api/items/{drill.pk}").status_code == 204
        assert client_for(alice).get(f"/api/items/{drill.pk}").status_code == 404

    def test_visibility_endpoint(self, client_for, alice, drill):
        response = client_for(alice).put(
            f"/api/items/{drill.pk}/visibility",
            {"visible_to_loop_ids": [], "visible_to_all_loops": True, "visible_to_future_loops": True},
            format="json",
        )
        assert response.status_code == 200
        assert response.data["visible_to_all_loops"] is True
        assert response.data["visible_to_future_loops"] is True
        assert response.data["visible_to_loop_ids"] == []

    def test_image_upload_endpoint(self, client_for, alice, drill):
        upload = SimpleUploadedFile("drill.gif", b"GIF89a" + b"\x00" * 32, content_type="image/gif")
        response = client_for(alice).post(f"/api/items/{drill.pk}/image", {"file": upload}, format="multipart")

        assert response.status_code == 200
        assert response.data["image_url"].startswith("/uploads/images/")

    def test_image_upload_without_file(self, client_for, alice, drill):
        response = client_for(alice).post(f"/api/items/{drill.pk}/image", {}, format="multipart")
        assert response.status_code == 400
