from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import pytest

from apps.api.services.errors import InvalidTransitionError
from apps.api.services.publication import PublicationLifecycle, PublicationStatus


@dataclass
class Page:
    title: str
    status: PublicationStatus = PublicationStatus.DRAFT
    published_at: datetime | None = None


@pytest.fixture
def lifecycle(clock) -> PublicationLifecycle:
    return PublicationLifecycle(clock=clock)


def test_initial_defaults_to_draft(lifecycle):
    assert lifecycle.initial() == (PublicationStatus.DRAFT, None)
    status, published_at = lifecycle.initial("published")
    assert status is PublicationStatus.PUBLISHED
    assert published_at is not None


def test_initial_rejects_unknown_status(lifecycle):
    with pytest.raises(InvalidTransitionError):
        lifecycle.initial("LIVE")


def test_republishing_stamps_a_later_timestamp(lifecycle):
    page = Page(title="Shipping rules")

    first = lifecycle.publish(page)
    drafted = lifecycle.unpublish(first)
    second = lifecycle.publish(drafted)

    assert drafted.status is PublicationStatus.DRAFT
    assert drafted.published_at is None
    assert second.published_at > first.published_at
    for state in (page, first, drafted, second):
        assert PublicationLifecycle.is_consistent(state)


def test_unpublish_accepts_archived_but_not_published(lifecycle):
    published = lifecycle.publish(Page(title="Returns"))

    archived = lifecycle.unpublish(published, "ARCHIVED")
    assert archived.status is PublicationStatus.ARCHIVED
    assert archived.published_at is None

    with pytest.raises(InvalidTransitionError):
        lifecycle.unpublish(published, PublicationStatus.PUBLISHED)


def test_edit_keeps_original_publish_time(lifecycle):
    published = lifecycle.publish(Page(title="Payouts"))

    edited = lifecycle.apply_edit(published)
    republished_via_edit = lifecycle.apply_edit(published, "PUBLISHED")

    assert edited.published_at == published.published_at
    assert republished_via_edit.published_at == published.published_at


def test_edit_to_published_stamps_when_unset(lifecycle):
    edited = lifecycle.apply_edit(Page(title="Payouts"), PublicationStatus.PUBLISHED)

    assert edited.status is PublicationStatus.PUBLISHED
    assert edited.published_at is not None


def test_edit_away_from_published_clears_timestamp(lifecycle):
    published = lifecycle.publish(Page(title="Payouts"))

    edited = lifecycle.apply_edit(published, "DRAFT")

    assert edited.status is PublicationStatus.DRAFT
    assert edited.published_at is None


def test_archived_content_can_return(lifecycle):
    archived = lifecycle.archive(lifecycle.publish(Page(title="Old promo")))

    restored = lifecycle.publish(archived)

    assert archived.published_at is None
    assert restored.status is PublicationStatus.PUBLISHED
    assert PublicationLifecycle.is_consistent(restored)
