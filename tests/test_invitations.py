"""Tests for the invitation lifecycle."""

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import ConflictError, ForbiddenError, InfrastructureError, InvalidInputError, NotFoundError
from app.models import Invite, Member, Team
from app.schemas.invite import InviteStatus
from app.schemas.member import Role
from app.services import invitations
from app.services.roles import role_of
from app.services.teams import add_member


@pytest.fixture
def groceries(session, make_user, make_team):
    owner = make_user("owner")
    team = make_team(owner, "Groceries")
    return owner, team


def test_groceries_invitation_scenario(session, make_user, groceries):
    owner, team = groceries
    assert role_of(team.id, owner.id, session) is Role.admin

    invite = invitations.create_invitation(team.id, owner.id, "friend@example.com", Role.editor, session)
    assert invite.status == InviteStatus.pending.value
    assert invite.resolved_at is None

    with pytest.raises(ConflictError) as exc:
        invitations.create_invitation(team.id, owner.id, "Friend@Example.com", Role.editor, session)
    assert exc.value.rejected_input == {"email": "friend@example.com"}

    friend = make_user("friend", "friend@example.com")
    accepted = invitations.accept_invitation(invite.id, friend.id, "FRIEND@example.com", session)
    assert accepted.status == InviteStatus.accepted.value
    assert accepted.resolved_at is not None
    assert session.get(Member, (team.id, friend.id)).role == Role.editor.value

    again = invitations.accept_invitation(invite.id, friend.id, friend.email, session)
    assert again.status == InviteStatus.accepted.value


def test_invitee_without_account_is_allowed(session, groceries):
    owner, team = groceries
    invite = invitations.create_invitation(team.id, owner.id, "  New@Example.com ", Role.viewer, session)
    assert invite.email_invited == "new@example.com"


def test_only_admin_can_invite(session, make_user, groceries):
    owner, team = groceries
    editor = make_user("editor")
    add_member(team.id, owner.id, editor.email, Role.editor, session)
    with pytest.raises(ForbiddenError):
        invitations.create_invitation(team.id, editor.id, "x@example.com", Role.viewer, session)


def test_cannot_invite_self(session, groceries):
    owner, team = groceries
    with pytest.raises(InvalidInputError):
        invitations.create_invitation(team.id, owner.id, owner.email.upper(), Role.admin, session)


def test_cannot_invite_existing_member(session, make_user, groceries):
    owner, team = groceries
    viewer = make_user("viewer")
    add_member(team.id, owner.id, viewer.email, Role.viewer, session)
    with pytest.raises(ConflictError):
        invitations.create_invitation(team.id, owner.id, viewer.email, Role.editor, session)


def test_reinvite_after_decline(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    first = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)
    invitations.decline_invitation(first.id, guest.id, guest.email, session)

    second = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)
    assert second.id != first.id


def test_accept_after_decline_fails_without_change(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)
    declined = invitations.decline_invitation(invite.id, guest.id, guest.email, session)
    resolved_at = declined.resolved_at

    with pytest.raises(ConflictError):
        invitations.accept_invitation(invite.id, guest.id, guest.email, session)

    session.expire_all()
    stored = session.get(Invite, invite.id)
    assert stored.status == InviteStatus.declined.value
    assert stored.resolved_at == resolved_at
    assert session.get(Member, (team.id, guest.id)) is None


def test_decline_after_accept_fails(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)
    invitations.accept_invitation(invite.id, guest.id, guest.email, session)

    with pytest.raises(ConflictError):
        invitations.decline_invitation(invite.id, guest.id, guest.email, session)
    assert session.get(Invite, invite.id).status == InviteStatus.accepted.value


def test_only_invited_identity_can_respond(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    intruder = make_user("intruder")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)

    with pytest.raises(NotFoundError):
        invitations.accept_invitation(invite.id, intruder.id, intruder.email, session)
    with pytest.raises(NotFoundError):
        invitations.decline_invitation(invite.id, guest.id, None, session)
    assert session.get(Invite, invite.id).status == InviteStatus.pending.value


def test_accept_when_already_member_is_success(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.editor, session)
    add_member(team.id, owner.id, guest.email, Role.viewer, session)

    accepted = invitations.accept_invitation(invite.id, guest.id, guest.email, session)
    assert accepted.status == InviteStatus.accepted.value
    assert session.get(Member, (team.id, guest.id)).role == Role.viewer.value


def test_accept_for_deleted_team(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)
    invite_id = invite.id
    session.delete(session.get(Team, team.id))
    session.commit()

    with pytest.raises(NotFoundError):
        invitations.accept_invitation(invite_id, guest.id, guest.email, session)


def test_failed_accept_leaves_invitation_pending(session, make_user, groceries, monkeypatch):
    owner, team = groceries
    guest = make_user("guest")
    invite = invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)

    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(session, "commit", failing_commit)
    with pytest.raises(InfrastructureError):
        invitations.accept_invitation(invite.id, guest.id, guest.email, session)
    monkeypatch.undo()

    assert session.get(Member, (team.id, guest.id)) is None
    assert session.get(Invite, invite.id).status == InviteStatus.pending.value

    accepted = invitations.accept_invitation(invite.id, guest.id, guest.email, session)
    assert accepted.status == InviteStatus.accepted.value


def test_list_pending_invitations(session, make_user, groceries):
    owner, team = groceries
    guest = make_user("guest")
    invitations.create_invitation(team.id, owner.id, guest.email, Role.viewer, session)

    pending = invitations.list_pending_invitations(guest.email.upper(), session)
    assert [(p.team_name, p.role) for p in pending] == [("Groceries", Role.viewer)]
    assert len(invitations.list_team_invitations(team.id, owner.id, session)) == 1


def test_lookup_principal_by_email(session, make_user):
    user = make_user("someone", "Someone@Example.com")
    assert invitations.lookup_principal_id_by_email("someone@example.com", session) == user.id
    assert invitations.lookup_principal_id_by_email("ghost@example.com", session) is None
