from datetime import date

from filmhub.models.records import MovieList
from filmhub.utils import (
    days_until_release, list_share_text, movie_share_text, trailer_share_text, youtube_watch_url,
)


def test_days_until_release():
    today = date(2025, 1, 1)
    assert days_until_release("2025-01-11", today) == 10
    assert days_until_release("2025-01-01", today) == 0
    assert days_until_release("2024-12-31", today) is None
    assert days_until_release("", today) is None
    assert days_until_release("soon", today) is None


def test_youtube_watch_url():
    assert youtube_watch_url("abc") == "https://www.youtube.com/watch?v=abc"


def test_list_share_text():
    text = list_share_text(MovieList(title="Noir", description="Dark films", movie_ids=[1, 2]))
    assert text.startswith("🎬 Noir\n\nDark films\n")
    assert "2 movies" in text

    single = list_share_text(MovieList(title="One", movie_ids=[7]))
    assert "1 movie\n" in single
    assert "Dark films" not in single


def test_share_texts_mention_title():
    assert "Heat" in movie_share_text("Heat")
    assert trailer_share_text("Heat", "https://x.test/v").endswith("https://x.test/v")
