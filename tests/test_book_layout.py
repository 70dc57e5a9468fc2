"""Flip-book binding and spread labels."""

from app.models.story import StoryModel
from app.services.book_layout import build_sheets, layout_book, spread_label


def labels(page_count):
    sheets = build_sheets(page_count)
    return [spread_label(sheets, index) for index in range(len(sheets) + 1)]


def test_twelve_page_book():
    sheets = build_sheets(12)
    # cover, five double sheets (pages 2-11), page 12 alone, back cover
    assert len(sheets) == 8
    assert sheets[0].back.page_index == 0
    assert sheets[-2].back is None
    assert labels(12) == [
        "Cover",
        "Pages 1-2",
        "Pages 3-4",
        "Pages 5-6",
        "Pages 7-8",
        "Pages 9-10",
        "Pages 11-12",
        "Back Cover",
        "Back Cover",
    ]


def test_odd_page_count_has_no_single_sheet():
    sheets = build_sheets(3)
    assert [(s.front.kind, s.back.kind if s.back else None) for s in sheets] == [
        ("cover", "page"),
        ("page", "page"),
        ("end", None),
    ]
    assert labels(3) == ["Cover", "Pages 1-2", "Page 3", "Back Cover"]


def test_single_page_book():
    assert labels(1) == ["Cover", "Page 1", "Back Cover"]


def test_layout_includes_page_content():
    story = StoryModel.from_dict(
        "s1",
        {
            "title": "Moon Boat",
            "author": "a",
            "coverImage": "https://cdn.test/cover.png",
            "ageGroup": "3-5",
            "theme": "Fantasy",
            "readingLevel": "Easy",
            "userId": "u1",
        },
        pages=[
            {"pageNumber": 1, "text": "Two", "imagePrompt": "p2"},
            {"pageNumber": 0, "text": "One", "imagePrompt": "p1", "imageUrl": "https://cdn.test/1.png"},
        ],
    )

    book = layout_book(story)

    assert book["sheetCount"] == 3
    cover = book["spreads"][0]
    assert cover["left"] is None
    assert cover["right"] == {"kind": "cover", "title": "Moon Boat", "imageUrl": "https://cdn.test/cover.png"}
    first = book["spreads"][1]
    assert first["label"] == "Pages 1-2"
    assert first["left"]["text"] == "One"
    assert first["left"]["imageUrl"] == "https://cdn.test/1.png"
    assert book["spreads"][-1]["label"] == "Back Cover"
