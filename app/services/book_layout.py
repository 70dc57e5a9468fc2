"""
Flip-book layout for reading a saved story.

Pages are bound two to a sheet behind a cover sheet: the cover's reverse
holds the first page, each following sheet carries two pages, an odd page
out gets a sheet of its own, and a back cover closes the book. Opening the
book at spread ``n`` shows the back of sheet ``n - 1`` on the left and the
front of sheet ``n`` on the right.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.models.story import StoryModel

COVER = "cover"
PAGE = "page"
END = "end"


@dataclass
class BookFace:
    """One side of a sheet."""

    kind: str
    page_index: Optional[int] = None

    def to_dict(self, story: StoryModel) -> Dict[str, Any]:
        if self.kind == COVER:
            return {"kind": COVER, "title": story.title, "imageUrl": story.cover_image}
        if self.kind == END:
            return {"kind": END, "text": "The End"}
        page = story.pages[self.page_index]
        return {"kind": PAGE, "pageIndex": self.page_index, **page.to_dict()}


@dataclass
class BookSheet:
    """A physical leaf; ``back`` is None for single-sided sheets."""

    front: BookFace
    back: Optional[BookFace] = None


def build_sheets(page_count: int) -> List[BookSheet]:
    """Bind ``page_count`` pages into sheets between a cover and a back cover."""
    sheets = [
        BookSheet(
            front=BookFace(COVER),
            back=BookFace(PAGE, 0) if page_count > 0 else None,
        )
    ]
    for i in range(1, page_count - 1, 2):
        sheets.append(BookSheet(front=BookFace(PAGE, i), back=BookFace(PAGE, i + 1)))
    if page_count > 1 and (page_count - 1) % 2 != 0:
        sheets.append(BookSheet(front=BookFace(PAGE, page_count - 1)))
    sheets.append(BookSheet(front=BookFace(END)))
    return sheets


def spread_faces(sheets: List[BookSheet], spread: int) -> List[Optional[BookFace]]:
    """``[left, right]`` faces visible when the book is open at ``spread``."""
    left = sheets[spread - 1].back if spread > 0 else None
    right = sheets[spread].front if spread < len(sheets) else None
    return [left, right]


def spread_label(sheets: List[BookSheet], spread: int) -> str:
    """Navigation label: "Cover", "Page n", "Pages n-m" or "Back Cover"."""
    numbers = [
        face.page_index + 1
        for face in spread_faces(sheets, spread)
        if face is not None and face.kind == PAGE
    ]
    if not numbers:
        return "Cover" if spread == 0 else "Back Cover"
    if len(numbers) == 1:
        return f"Page {numbers[0]}"
    return f"Pages {numbers[0]}-{numbers[-1]}"


def layout_book(story: StoryModel) -> Dict[str, Any]:
    """Sheets and labelled spreads for a story with its pages loaded."""
    pages = story.pages or []
    sheets = build_sheets(len(pages))
    spreads = []
    for index in range(len(sheets) + 1):
        left, right = spread_faces(sheets, index)
        spreads.append({
            "index": index,
            "label": spread_label(sheets, index),
            "left": left.to_dict(story) if left else None,
            "right": right.to_dict(story) if right else None,
        })
    return {
        "storyId": story.id,
        "title": story.title,
        "sheetCount": len(sheets),
        "spreads": spreads,
    }
