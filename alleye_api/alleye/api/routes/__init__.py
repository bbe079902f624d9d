"""
API route modules.

This package contains subrouters for:
- Auth: sign-up, login, refresh, logout and social sign-in URLs
- Me, Users, Organizations: profiles and organization administration
- Content, Playlists, Assignments, Videos: the learning catalog
- Progress, News, Q&A, Analytics, Reports, Recommendations

Routers are included from alleye.api.main (under the /api/v1 prefix).
"""
