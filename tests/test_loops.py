from datetime import timedelta

import pytest
from django.core import mail
from django.core.management import call_command
from django.utils import timezone

from backend.core.exceptions import NotFound, InvalidOperation, Forbidden
from items.models import SharedItem
from items.services import items_service
from loops.models import Loop, LoopInvitation, LoopJoinRequest, OwnershipTransfer
from loops.services import loop_service, invitation_service, join_request_service
from loops.tasks import run_invitation_expiry


@pytest.mark.django_db
class TestLoopService:

    def test_creator_is_owner_and_only_member(self, alice):
        loop = loop_service.create_loop(alice, "  Book Club  ")

        assert loop.name == "Book Club"
        assert loop.is_owner(alice.pk)
        assert list(loop.members.all()) == [alice]

    def test_is_loop_owner(self, loop, alice, bob):
        assert loop_service.is_loop_owner(loop.pk, alice.pk)
        assert not loop_service.is_loop_owner(loop.pk, bob.pk)
        assert not loop_service.is_loop_owner(999999, alice.pk)

    def test_name_required(self, alice):
        with pytest.raises(InvalidOperation):
            loop_service.create_loop(alice, "   ")

    def test_add_member_is_idempotent(self, loop, bob):
        loop_service.add_member(loop.pk, bob.pk)
        assert loop.members.count() == 2

    def test_new_member_items_follow_future_loops(self, loop, carol):
        ladder = items_service.create_item(carol, "Ladder", visible_to_future_loops=True)
        saw = items_service.create_item(carol, "Saw")

        loop_service.add_member(loop.pk, carol.pk)

        assert list(ladder.visible_to_loops.all()) == [loop]
        assert saw.visible_to_loops.count() == 0

    def test_owner_cannot_leave_or_be_removed(self, loop, alice):
        with pytest.raises(InvalidOperation):
            loop_service.leave_loop(loop.pk, alice.pk)
        with pytest.raises(InvalidOperation):
            loop_service.remove_member(loop.pk, alice.pk, alice.pk)

    def test_leaving_hides_items_from_the_loop(self, loop, bob):
        ladder = items_service.create_item(bob, "Ladder", visible_to_loop_ids=[loop.pk])

        loop_service.leave_loop(loop.pk, bob.pk)

        assert not loop_service.is_loop_member(loop.pk, bob.pk)
        assert ladder.visible_to_loops.count() == 0

    def test_only_owner_removes_members(self, loop, alice, bob):
        with pytest.raises(Forbidden):
            loop_service.remove_member(loop.pk, alice.pk, bob.pk)

        loop_service.remove_member(loop.pk, bob.pk, alice.pk)
        assert not loop_service.is_loop_member(loop.pk, bob.pk)

    def test_potential_invitees_come_from_other_loops(self, loop, alice, bob, carol, make_user):
        other = loop_service.create_loop(alice, "Book Club")
        loop_service.add_member(other.pk, carol.pk)
        loop_service.add_member(other.pk, bob.pk)
        make_user("stranger@example.com")

        invitees = loop_service.get_potential_invitees(loop.pk, alice.pk)
        assert invitees == [carol]

    def test_archive_and_restore(self, loop, alice, bob):
        with pytest.raises(Forbidden):
            loop_service.archive_loop(loop.pk, bob.pk)

        loop_service.archive_loop(loop.pk, alice.pk)
        assert list(loop_service.get_user_loops(bob.pk)) == []
        assert list(loop_service.get_archived_loops(alice.pk)) == [loop]

        with pytest.raises(InvalidOperation):
            loop_service.archive_loop(loop.pk, alice.pk)

        restored = loop_service.restore_loop(loop.pk, alice.pk)
        assert restored.archived_at is None
        assert list(loop_service.get_user_loops(bob.pk)) == [loop]

    def test_delete_cascades(self, loop, alice, bob, carol, drill):
        invitation_service.create_email_invitation(loop.pk, alice, "newbie@example.com")
        join_request_service.create_join_request(loop.pk, carol)

        loop_service.delete_loop(loop.pk, alice.pk)

        assert not Loop.objects.filter(pk=loop.pk).exists()
        assert LoopInvitation.objects.count() == 0
        assert LoopJoinRequest.objects.count() == 0
        assert SharedItem.objects.get(pk=drill.pk).visible_to_loops.count() == 0

    def test_public_loops_and_search(self, alice):
        loop_service.create_loop(alice, "Private Tools")
        garden = loop_service.create_loop(alice, "Garden Share", description="Seeds and hoses", is_public=True)
        books = loop_service.create_loop(alice, "Books", description="Paperback swap", is_public=True)
        loop_service.create_loop(alice, "Old Garden", is_public=True)
        Loop.objects.filter(name="Old Garden").update(is_archived=True)

        assert loop_service.get_public_loops() == [books, garden]
        assert loop_service.get_public_loops(skip=1, limit=1) == [garden]
        assert loop_service.search_public_loops("GARDEN") == [garden]
        assert loop_service.search_public_loops("paperback") == [books]


@pytest.mark.django_db
class TestOwnershipTransfer:

    def test_accept_changes_owner(self, loop, alice, bob):
        loop_service.initiate_ownership_transfer(loop.pk, alice.pk, bob.pk)

        with pytest.raises(InvalidOperation):
            loop_service.initiate_ownership_transfer(loop.pk, alice.pk, bob.pk)
        with pytest.raises(Forbidden):
            loop_service.accept_ownership_transfer(loop.pk, alice.pk)

        updated = loop_service.accept_ownership_transfer(loop.pk, bob.pk)
        assert updated.creator_id == bob.pk
        assert OwnershipTransfer.objects.get(loop=loop).status == "Accepted"
        assert loop_service.get_pending_transfer(loop.pk) is None

    def test_target_must_be_member(self, loop, alice, carol):
        with pytest.raises(InvalidOperation):
            loop_service.initiate_ownership_transfer(loop.pk, alice.pk, carol.pk)

    def test_decline_and_cancel(self, loop, alice, bob):
        loop_service.initiate_ownership_transfer(loop.pk, alice.pk, bob.pk)
        assert loop_service.decline_ownership_transfer(loop.pk, bob.pk).status == "Declined"

        loop_service.initiate_ownership_transfer(loop.pk, alice.pk, bob.pk)
        with pytest.raises(Forbidden):
            loop_service.cancel_ownership_transfer(loop.pk, bob.pk)
        assert loop_service.cancel_ownership_transfer(loop.pk, alice.pk).status == "Cancelled"

        loop.refresh_from_db()
        assert loop.creator_id == alice.pk

    def test_nothing_pending(self, loop, bob):
        with pytest.raises(NotFound):
            loop_service.accept_ownership_transfer(loop.pk, bob.pk)


@pytest.mark.django_db
class TestInvitations:

    def test_email_invitation_for_unknown_address(self, loop, alice):
        invitation = invitation_service.create_email_invitation(loop.pk, alice, "Newbie@Example.com")

        assert invitation.invited_email == "newbie@example.com"
        assert invitation.invited_user is None
        assert invitation.status == "Pending"
        assert invitation.expires_at > timezone.now() + timedelta(days=29)

        assert mail.outbox[0].subject == "You're invited to join Maple Street"
        assert invitation.invitation_token in mail.outbox[0].alternatives[0][0]

    def test_email_of_registered_user_becomes_user_invitation(self, loop, alice, carol):
        invitation = invitation_service.create_email_invitation(loop.pk, alice, "CAROL@example.com")
        assert invitation.invited_user == carol

    def test_existing_member_cannot_be_invited(self, loop, alice, bob):
        with pytest.raises(InvalidOperation):
            invitation_service.create_email_invitation(loop.pk, alice, bob.email)
        with pytest.raises(InvalidOperation):
            invitation_service.create_user_invitation(loop.pk, alice, bob.pk)

    def test_unknown_user_cannot_be_invited(self, loop, alice):
        with pytest.raises(InvalidOperation):
            invitation_service.create_user_invitation(loop.pk, alice, 999999)

    def test_non_member_cannot_invite(self, loop, carol):
        with pytest.raises(Forbidden):
            invitation_service.create_email_invitation(loop.pk, carol, "someone@example.com")

    def test_accept_by_token_sets_inviter(self, loop, alice, make_user):
        invitation = invitation_service.create_email_invitation(loop.pk, alice, "dana@example.com")
        dana = make_user("dana@example.com")

        accepted = invitation_service.accept_invitation(invitation.invitation_token)

        assert accepted.status == "Accepted"
        assert accepted.accepted_at is not None
        assert accepted.invited_user == dana
        assert loop_service.is_loop_member(loop.pk, dana.pk)
        dana.refresh_from_db()
        assert dana.invited_by == alice

    def test_accept_by_token_prefers_current_user(self, loop, alice, carol):
        invitation = invitation_service.create_email_invitation(loop.pk, alice, "dana@example.com")

        accepted = invitation_service.accept_invitation(invitation.invitation_token, current_user=carol)

        assert accepted.invited_user == carol
        assert loop_service.is_loop_member(loop.pk, carol.pk)

    def test_token_without_any_user_is_not_accepted(self, loop, alice):
        invitation = invitation_service.create_email_invitation(loop.pk, alice, "dana@example.com")
        assert invitation_service.accept_invitation(invitation.invitation_token) is None

    def test_expired_invitation(self, loop, alice, carol):
        invitation = invitation_service.create_user_invitation(loop.pk, alice, carol.pk)
        LoopInvitation.objects.filter(pk=invitation.pk).update(expires_at=timezone.now() - timedelta(days=1))

        assert invitation_service.accept_invitation(invitation.invitation_token) is None
        assert invitation_service.expire_old_invitations() == 1
        assert LoopInvitation.objects.get(pk=invitation.pk).status == "Expired"

    def test_invitation_to_archived_loop_cannot_be_accepted(self, loop, alice, carol):
        invitation = invitation_service.create_user_invitation(loop.pk, alice, carol.pk)
        loop_service.archive_loop(loop.pk, alice.pk)

        with pytest.raises(InvalidOperation):
            invitation_service.accept_invitation(invitation.invitation_token)
        with pytest.raises(InvalidOperation):
            invitation_service.accept_invitation_for_user(invitation.pk, carol)
        assert not loop_service.is_loop_member(loop.pk, carol.pk)
        assert LoopInvitation.objects.get(pk=invitation.pk).status == "Pending"

    def test_accept_for_user_checks_recipient(self, loop, alice, carol, make_user):
        invitation = invitation_service.create_user_invitation(loop.pk, alice, carol.pk)
        dana = make_user("dana@example.com")

        with pytest.raises(Forbidden):
            invitation_service.accept_invitation_for_user(invitation.pk, dana)

        accepted = invitation_service.accept_invitation_for_user(invitation.pk, carol)
        assert accepted.status == "Accepted"

    def test_pending_for_user_matches_id_or_email(self, loop, alice, carol):
        by_user = invitation_service.create_user_invitation(loop.pk, alice, carol.pk)
        other = loop_service.create_loop(alice, "Book Club")
        by_email = LoopInvitation.objects.create(
            loop=other,
            invited_by=alice,
            invited_email="carol@example.com",
            invitation_token="manual-token",
            expires_at=timezone.now() + timedelta(days=1),
        )

        pending = invitation_service.get_pending_invitations_for_user(carol)
        assert {i.pk for i in pending} == {by_user.pk, by_email.pk}
        assert [i.pk for i in invitation_service.get_pending_invitations_for_loop(loop.pk)] == [by_user.pk]

    def test_expiry_job_and_command(self, loop, alice, carol):
        invitation = invitation_service.create_user_invitation(loop.pk, alice, carol.pk)
        LoopInvitation.objects.filter(pk=invitation.pk).update(expires_at=timezone.now() - timedelta(days=1))

        assert run_invitation_expiry() == 1
        call_command("expire_invitations")
        assert LoopInvitation.objects.get(pk=invitation.pk).status == "Expired"


@pytest.mark.django_db
class TestJoinRequests:

    def test_approve_adds_member(self, loop, alice, carol):
        join_request = join_request_service.create_join_request(loop.pk, carol, "  I live at no. 9  ")
        assert join_request.message == "I live at no. 9"

        with pytest.raises(InvalidOperation):
            join_request_service.create_join_request(loop.pk, carol)

        approved = join_request_service.approve_join_request(join_request.pk, alice.pk)
        assert approved.status == "Approved"
        assert approved.responded_at is not None
        assert loop_service.is_loop_member(loop.pk, carol.pk)

        with pytest.raises(InvalidOperation):
            join_request_service.reject_join_request(join_request.pk, alice.pk)

    def test_only_owner_responds(self, loop, bob, carol):
        join_request = join_request_service.create_join_request(loop.pk, carol)
        with pytest.raises(Forbidden):
            join_request_service.reject_join_request(join_request.pk, bob.pk)

    def test_members_and_archived_loops(self, loop, alice, bob, carol):
        with pytest.raises(InvalidOperation):
            join_request_service.create_join_request(loop.pk, bob)

        loop_service.archive_loop(loop.pk, alice.pk)
        with pytest.raises(NotFound):
            join_request_service.create_join_request(loop.pk, carol)

    def test_approval_blocked_once_loop_is_archived(self, loop, alice, carol):
        join_request = join_request_service.create_join_request(loop.pk, carol)
        loop_service.archive_loop(loop.pk, alice.pk)

        with pytest.raises(InvalidOperation):
            join_request_service.approve_join_request(join_request.pk, alice.pk)
        assert not loop_service.is_loop_member(loop.pk, carol.pk)
        assert join_request_service.reject_join_request(join_request.pk, alice.pk).status == "Rejected"

    def test_reject_and_list(self, loop, alice, carol):
        join_request = join_request_service.create_join_request(loop.pk, carol)
        assert join_request_service.get_pending_requests_for_loop(loop.pk) == [join_request]

        join_request_service.reject_join_request(join_request.pk, alice.pk)

        assert join_request_service.get_pending_requests_for_loop(loop.pk) == []
        assert not loop_service.is_loop_member(loop.pk, carol.pk)
        assert [r.status for r in join_request_service.get_user_join_requests(carol.pk)] == ["Rejected"]


@pytest.mark.django_db
class TestLoopApi:

    def test_create_and_list(self, client_for, alice, drill):
        client = client_for(alice)

        response = client.post("/api/loops/", {"name": "Book Club", "is_public": True}, format="json")
        assert response.status_code == 201
        assert response.data["member_count"] == 1

        loops = client.get("/api/loops/").data
        by_name = {l["name"]: l for l in loops}
        assert set(by_name) == {"Maple Street", "Book Club"}
        assert by_name["Maple Street"]["member_count"] == 2
        assert by_name["Maple Street"]["item_count"] == 1

    def test_detail_is_members_only(self, client_for, loop, bob, carol):
        assert client_for(bob).get(f"/api/loops/{loop.pk}").status_code == 200
        assert client_for(carol).get(f"/api/loops/{loop.pk}").status_code == 403
        assert client_for(bob).get("/api/loops/999999").status_code == 404

    def test_loop_items_with_search(self, client_for, loop, alice, bob, drill):
        items_service.create_item(alice, "Hedge Trimmer", visible_to_loop_ids=[loop.pk])
        client = client_for(bob)

        assert len(client.get(f"/api/loops/{loop.pk}/items").data) == 2
        found = client.get(f"/api/loops/{loop.pk}/items?search=batteries").data
        assert [i["name"] for i in found] == ["Cordless Drill"]

    def test_public_search_requires_query(self, client_for, alice):
        response = client_for(alice).get("/api/loops/public/search")
        assert response.status_code == 400

    def test_settings_owner_only(self, client_for, loop, alice, bob):
        response = client_for(bob).put(f"/api/loops/{loop.pk}/settings", {"name": "Hijacked"}, format="json")
        assert response.status_code == 403

        response = client_for(alice).put(
            f"/api/loops/{loop.pk}/settings", {"description": "Updated", "is_public": True}, format="json"
        )
        assert response.status_code == 200
        assert response.data["description"] == "Updated"
        assert response.data["is_public"] is True
        assert response.data["name"] == "Maple Street"

    def test_invite_and_accept_via_api(self, client_for, api_client, loop, alice, make_user):
        response = client_for(alice).post(
            f"/api/loops/{loop.pk}/invite-email", {"email": "dana@example.com"}, format="json"
        )
        assert response.status_code == 201
        assert "invitation_token" not in response.data

        dana = make_user("dana@example.com")
        pending = client_for(dana).get("/api/loops/invitations/pending").data
        assert [i["loop_name"] for i in pending] == ["Maple Street"]
        assert pending[0]["invited_by_name"] == "Alice Owner"

        token = LoopInvitation.objects.get(pk=response.data["id"]).invitation_token
        accepted = api_client.post(f"/api/loops/invitations/{token}/accept")
        assert accepted.status_code == 200
        assert loop_service.is_loop_member(loop.pk, dana.pk)

        again = api_client.post(f"/api/loops/invitations/{token}/accept")
        assert again.status_code == 400

    def test_invite_user_validates_user_id(self, client_for, loop, alice, carol):
        client = client_for(alice)

        bad = client.post(f"/api/loops/{loop.pk}/invite-user", {"user_id": "abc"}, format="json")
        assert bad.status_code == 400
        assert "user_id" in bad.data
        assert client.post(f"/api/loops/{loop.pk}/invite-user", {}, format="json").status_code == 400

        invited = client.post(f"/api/loops/{loop.pk}/invite-user", {"user_id": carol.pk}, format="json")
        assert invited.status_code == 201
        assert invited.data["invited_user_id"] == carol.pk

    def test_transfer_and_leave_via_api(self, client_for, loop, alice, bob):
        response = client_for(alice).post(
            f"/api/loops/{loop.pk}/transfer-ownership", {"new_owner_id": bob.pk}, format="json"
        )
        assert response.status_code == 201

        pending = client_for(bob).get(f"/api/loops/{loop.pk}/transfer-ownership/pending")
        assert pending.data["to_user"]["id"] == bob.pk

        accepted = client_for(bob).post(f"/api/loops/{loop.pk}/transfer-ownership/accept")
        assert accepted.data["creator_id"] == bob.pk

        left = client_for(alice).post(f"/api/loops/{loop.pk}/leave")
        assert left.status_code == 200
        assert not loop_service.is_loop_member(loop.pk, alice.pk)

    def test_join_request_flow_via_api(self, client_for, loop, alice, carol):
        created = client_for(carol).post(f"/api/loops/{loop.pk}/join-requests", {"message": "Hi!"}, format="json")
        assert created.status_code == 201

        assert client_for(carol).get(f"/api/loops/{loop.pk}/join-requests").status_code == 403
        pending = client_for(alice).get(f"/api/loops/{loop.pk}/join-requests").data
        assert [r["user"]["email"] for r in pending] == ["carol@example.com"]

        approved = client_for(alice).post(f"/api/loops/join-requests/{created.data['id']}/approve")
        assert approved.data["status"] == "Approved"

        mine = client_for(carol).get("/api/loops/join-requests/my-requests").data
        assert [r["status"] for r in mine] == ["Approved"]

    def test_remove_member_and_delete(self, client_for, loop, alice, bob):
        assert client_for(alice).delete(f"/api/loops/{loop.pk}/members/{bob.pk}").status_code == 204
        assert client_for(bob).delete(f"/api/loops/{loop.pk}").status_code == 403
        assert client_for(alice).delete(f"/api/loops/{loop.pk}").status_code == 204
        assert not Loop.objects.filter(pk=loop.pk).exists()
