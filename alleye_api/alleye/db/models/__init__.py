"""
ORM models for the learning platform: organizations, profiles, content,
playlists, assignments, news, Q&A and analytics.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .organization import Organization  # noqa: F401
from .profile import Profile  # noqa: F401
from .content import (  # noqa: F401
    Content,
    Playlist,
    UserAssignment,
)
from .community import (  # noqa: F401
    NewsItem,
    QAndAItem,
)
from .analytics import (  # noqa: F401
    AnalyticsRecord,
    CyberTrainingAnalyticsRecord,
)
