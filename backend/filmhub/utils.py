"""Small helpers: release countdowns, share texts and trailer links."""

from datetime import date, datetime
from typing import Optional

from filmhub.models.records import MovieList


def days_until_release(release_date: str, today: Optional[date] = None) -> Optional[int]:
    """Whole days from ``today`` to a ``YYYY-MM-DD`` release date.

    None when the date is unparseable or already past.
    """
    try:
        released = datetime.strptime(release_date, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        return None
    days = (released - (today or date.today())).days
    return days if days >= 0 else None


def youtube_watch_url(key: str) -> str:
    return f"https://www.youtube.com/watch?v={key}"


def list_share_text(movie_list: MovieList) -> str:
    lines = [f"🎬 {movie_list.title}", ""]
    if movie_list.description:
        lines += [movie_list.description, ""]
    count = len(movie_list.movie_ids)
    lines += [f"📽️ {count} {'movie' if count == 1 else 'movies'}", "", "Check out my list on FilmHub!"]
    return "\n".join(lines)


def movie_share_text(title: str) -> str:
    return f"🎬 {title}\n\nI recommend this movie!\n\nFind it on FilmHub"


def trailer_share_text(title: str, trailer_url: str) -> str:
    return f"🎬 Watch the trailer for {title}\n\n{trailer_url}"
