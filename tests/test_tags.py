"""Tests for tag reconciliation."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.errors import ConflictError
from app.models import Item, ItemTagLink, Tag
from app.services import tags as tag_service
from app.services.tags import (
    get_item_tags,
    normalize_tag_names,
    parse_tag_string,
    reconcile,
)


@pytest.fixture
def team_setup(session, make_user, make_team):
    owner = make_user("owner")
    team = make_team(owner)
    return owner, team


@pytest.fixture
def make_item(session):
    def _make_item(team, name="Milk"):
        item = Item(name=name, expiration=date(2026, 12, 1), team_id=team.id)
        session.add(item)
        session.commit()
        session.refresh(item)
        return item
    return _make_item


def linked_names(item, session):
    return {tag.name for tag in get_item_tags(item.id, session)}


def link_count(session):
    return len(session.exec(select(ItemTagLink)).all())


class TestNormalization:

    def test_trims_lowercases_and_dedupes(self):
        assert normalize_tag_names([" Dairy", "dairy ", "", "   ", "FROZEN"]) == {"dairy", "frozen"}

    def test_parse_tag_string(self):
        assert parse_tag_string(" food, Dairy ,, frozen ") == ["food", "Dairy", "frozen"]
        assert parse_tag_string(None) == []
        assert parse_tag_string("") == []


class TestReconcile:

    def test_food_dairy_to_dairy_frozen(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        reconcile(item.id, team.id, owner.id, ["food", "dairy"], session)
        dairy_id = session.exec(select(Tag).where(Tag.name == "dairy")).one().id

        result = reconcile(item.id, team.id, owner.id, ["Dairy", "frozen"], session)

        assert linked_names(item, session) == {"dairy", "frozen"}
        assert result.unlinked == ["food"]
        assert result.linked == ["frozen"]
        assert result.created == ["frozen"]
        # dairy was reused, not duplicated
        assert session.exec(select(Tag).where(Tag.name == "dairy")).one().id == dairy_id
        # food's link is gone but the tag stays for other items
        assert session.exec(select(Tag).where(Tag.name == "food")).first() is not None

    def test_second_application_is_noop(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        reconcile(item.id, team.id, owner.id, ["a", "b"], session)
        links_before = link_count(session)

        result = reconcile(item.id, team.id, owner.id, ["a", "b"], session)

        assert not result.changed
        assert result.linked == [] and result.unlinked == [] and result.created == []
        assert link_count(session) == links_before

    def test_order_and_duplicates_do_not_matter(self, session, team_setup, make_item):
        owner, team = team_setup
        first = make_item(team, "First")
        second = make_item(team, "Second")

        reconcile(first.id, team.id, owner.id, ["a", "b", "a"], session)
        reconcile(second.id, team.id, owner.id, ["B", " a "], session)

        assert linked_names(first, session) == {"a", "b"}
        assert linked_names(second, session) == {"a", "b"}
        assert len(session.exec(select(Tag)).all()) == 2

    def test_empty_desired_set_unlinks_everything(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        reconcile(item.id, team.id, owner.id, ["a", "b"], session)

        result = reconcile(item.id, team.id, owner.id, [], session)

        assert sorted(result.unlinked) == ["a", "b"]
        assert linked_names(item, session) == set()
        assert len(session.exec(select(Tag)).all()) == 2

    def test_existing_tag_matched_case_insensitively(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        stored = Tag(name="Dairy", team_id=team.id, creator_id=owner.id)
        session.add(stored)
        session.commit()

        result = reconcile(item.id, team.id, owner.id, ["dairy"], session)

        assert result.created == []
        assert [tag.id for tag in get_item_tags(item.id, session)] == [stored.id]
        # stored names are compared normalized but never rewritten
        assert reconcile(item.id, team.id, owner.id, ["DAIRY"], session).changed is False
        assert session.get(Tag, stored.id).name == "Dairy"

    def test_other_team_tags_are_not_reused(self, session, make_user, make_team, team_setup, make_item):
        owner, team = team_setup
        other_owner = make_user("other")
        other_team = make_team(other_owner, "Hardware")
        foreign = Tag(name="tools", team_id=other_team.id, creator_id=other_owner.id)
        session.add(foreign)
        session.commit()
        item = make_item(team)

        result = reconcile(item.id, team.id, owner.id, ["tools"], session)

        assert result.created == ["tools"]
        tag = get_item_tags(item.id, session)[0]
        assert tag.team_id == team.id
        assert tag.creator_id == owner.id
        assert tag.id != foreign.id

    def test_case_variant_rows_are_all_unlinked(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        variants = [Tag(name=name, team_id=team.id, creator_id=owner.id) for name in ("Dairy", "dairy")]
        session.add_all(variants)
        session.commit()
        session.add_all([ItemTagLink(item_id=item.id, tag_id=tag.id) for tag in variants])
        session.commit()

        result = reconcile(item.id, team.id, owner.id, [], session)

        assert result.unlinked == ["dairy"]
        assert link_count(session) == 0

    def test_case_variant_rows_link_once(self, session, team_setup, make_item):
        owner, team = team_setup
        item = make_item(team)
        session.add_all([Tag(name=name, team_id=team.id, creator_id=owner.id) for name in ("Dairy", "dairy")])
        session.commit()

        reconcile(item.id, team.id, owner.id, ["DAIRY"], session)

        assert [tag.name for tag in get_item_tags(item.id, session)] == ["dairy"]


def unique_violation():
    return IntegrityError("INSERT INTO tags", {},
                          Exception("UNIQUE constraint failed: tags.team_id, tags.name"))


class TestConcurrentTagCreation:

    def test_retry_reuses_tag_created_meanwhile(self, session, team_setup, make_item, monkeypatch):
        owner, team = team_setup
        item = make_item(team)
        real_find_or_create = tag_service.find_or_create_tags
        calls = []

        def racing_find_or_create(team_id, actor_id, names, session):
            calls.append(sorted(names))
            if len(calls) == 1:
                # another request commits the same tag first
                session.add(Tag(name="dairy", team_id=team_id, creator_id=actor_id))
                session.commit()
                raise unique_violation()
            return real_find_or_create(team_id, actor_id, names, session)

        monkeypatch.setattr(tag_service, "find_or_create_tags", racing_find_or_create)
        result = reconcile(item.id, team.id, owner.id, ["dairy"], session)

        assert len(calls) == 2
        assert result.created == []
        assert linked_names(item, session) == {"dairy"}
        assert len(session.exec(select(Tag).where(Tag.name == "dairy")).all()) == 1

    def test_second_conflict_is_reported(self, session, team_setup, make_item, monkeypatch):
        owner, team = team_setup
        item = make_item(team)

        def always_conflicting(*args, **kwargs):
            raise unique_violation()

        monkeypatch.setattr(tag_service, "find_or_create_tags", always_conflicting)
        with pytest.raises(ConflictError) as exc:
            reconcile(item.id, team.id, owner.id, ["frozen", "dairy"], session)

        assert exc.value.rejected_input == {"tags": ["dairy", "frozen"]}
        assert linked_names(item, session) == set()

    def test_other_integrity_errors_are_not_retried(self, session, team_setup, make_item, monkeypatch):
        owner, team = team_setup
        item = make_item(team)
        calls = []

        def broken_reference(*args, **kwargs):
            calls.append(args)
            raise IntegrityError("INSERT INTO tags", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(tag_service, "find_or_create_tags", broken_reference)
        with pytest.raises(IntegrityError):
            reconcile(item.id, team.id, owner.id, ["dairy"], session)
        assert len(calls) == 1
