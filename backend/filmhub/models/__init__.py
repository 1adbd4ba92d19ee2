"""Re-export domain records for import convenience."""

from filmhub.models.records import (  # noqa: F401
    MovieSummary, MoviePage, Genre, VideoTrailer,
    Review, Rating, MovieStats,
    WatchlistItem, FavoriteMovie, MovieList,
    User, Report, SupportTicket, TicketResponse, FAQ, AdminAction,
    decode, decode_all, now_millis,
)
