"""Story persistence: batched save, ordered read, filtered library and idempotent delete."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.crud.story import filter_stories, sort_newest_first
from app.models.story import NewStoryData, StoryModel
from app.utils.exceptions import AuthorizationError


def new_story(user_id="owner", pages=None, **overrides) -> NewStoryData:
    data = {
        "title": "The Lantern Fox",
        "author": "owner@example.com",
        "coverImage": "https://cdn.test/cover.png",
        "ageGroup": "3-5",
        "theme": "Adventure",
        "readingLevel": "Easy",
        "userId": user_id,
        "pages": pages or [
            {"pageNumber": 0, "text": "Once upon a time.", "imagePrompt": "a fox with a lantern"},
            {"pageNumber": 1, "text": "The end.", "imagePrompt": "a sleeping fox"},
        ],
    }
    data.update(overrides)
    return NewStoryData(**data)


async def test_pages_read_back_sorted_regardless_of_write_order(stories):
    pages = [
        {"pageNumber": 2, "text": "Third.", "imagePrompt": "c"},
        {"pageNumber": 0, "text": "First.", "imagePrompt": "a", "imageUrl": "https://cdn.test/a.png"},
        {"pageNumber": 1, "text": "Second.", "imagePrompt": "b"},
    ]
    story_id = await stories.create_story(new_story(pages=pages), "owner")

    story = await stories.get_story(story_id)

    assert [page.page_number for page in story.pages] == [0, 1, 2]
    assert [page.text for page in story.pages] == ["First.", "Second.", "Third."]
    assert story.pages[0].image_url == "https://cdn.test/a.png"
    assert story.pages[1].image_url is None
    assert story.created_at is not None


async def test_save_writes_parent_and_pages_together(store, stories):
    story_id = await stories.create_story(new_story(), "owner")

    parent = store.collection("stories").document(story_id).get().to_dict()
    pages = store.collection(f"stories/{story_id}/pages").get()

    assert parent["userId"] == "owner"
    assert "pages" not in parent
    assert len(pages) == 2


async def test_save_for_another_user_is_refused(store, stories):
    with pytest.raises(AuthorizationError):
        await stories.create_story(new_story(user_id="owner"), "intruder")
    assert store.collection("stories").get() == []


def test_story_validation_limits():
    with pytest.raises(PydanticValidationError):
        new_story(title="x" * 151)
    with pytest.raises(PydanticValidationError):
        new_story(title="   ")
    with pytest.raises(PydanticValidationError):
        new_story(coverImage="not-a-url")
    with pytest.raises(PydanticValidationError):
        new_story(pages=[
            {"pageNumber": i, "text": "t", "imagePrompt": "p"} for i in range(13)
        ])
    with pytest.raises(PydanticValidationError):
        new_story(pages=[{"pageNumber": 0, "text": "t" * 3001, "imagePrompt": "p"}])
    with pytest.raises(PydanticValidationError):
        new_story(pages=[
            {"pageNumber": 0, "text": "a", "imagePrompt": "p"},
            {"pageNumber": 0, "text": "b", "imagePrompt": "p"},
        ])


async def test_missing_story_reads_as_none(stories):
    assert await stories.get_story("missing") is None


async def test_delete_removes_story_and_pages(store, stories):
    story_id = await stories.create_story(new_story(), "owner")

    assert await stories.delete_story(story_id, "owner") is True

    assert await stories.get_story(story_id) is None
    assert store.collection(f"stories/{story_id}/pages").get() == []


async def test_delete_of_missing_story_succeeds(stories):
    assert await stories.delete_story("never-existed", "owner") is False


async def test_delete_by_non_owner_is_refused(stories):
    story_id = await stories.create_story(new_story(), "owner")

    with pytest.raises(AuthorizationError):
        await stories.delete_story(story_id, "intruder")

    assert await stories.get_story(story_id) is not None


async def test_list_only_returns_own_stories_newest_first(store, stories):
    first = await stories.create_story(new_story(title="Old"), "owner")
    second = await stories.create_story(new_story(title="New"), "owner")
    await stories.create_story(new_story(user_id="other", title="Not mine"), "other")
    store.collection("stories").document(first).set(
        {"createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}, merge=True
    )

    listed = await stories.list_for_user("owner")

    assert [story.id for story in listed] == [second, first]
    assert all(story.pages is None for story in listed)


def make_model(story_id, created_at, **fields) -> StoryModel:
    base = {
        "title": story_id,
        "author": "a",
        "coverImage": "https://cdn.test/c.png",
        "ageGroup": "3-5",
        "theme": "Adventure",
        "readingLevel": "Easy",
        "userId": "owner",
        "createdAt": created_at,
    }
    base.update(fields)
    return StoryModel.from_dict(story_id, base)


def test_sort_newest_first_puts_undated_last():
    now = datetime.now(timezone.utc)
    ordered = sort_newest_first([
        make_model("undated", None),
        make_model("older", now - timedelta(days=1)),
        make_model("newer", now),
    ])
    assert [story.id for story in ordered] == ["newer", "older", "undated"]


def test_filters_treat_all_as_no_filter():
    now = datetime.now(timezone.utc)
    library = [
        make_model("a", now, ageGroup="3-5", theme="Adventure"),
        make_model("b", now, ageGroup="6-8", theme="Mystery", readingLevel="Advanced"),
        make_model("c", now, ageGroup="6-8", theme="Adventure"),
    ]

    assert [s.id for s in filter_stories(library, age_group="6-8")] == ["b", "c"]
    assert [s.id for s in filter_stories(library, age_group="6-8", theme="Adventure")] == ["c"]
    assert [s.id for s in filter_stories(library, reading_level="Advanced")] == ["b"]
    assert len(filter_stories(library, age_group="All", theme="All", reading_level="All")) == 3
