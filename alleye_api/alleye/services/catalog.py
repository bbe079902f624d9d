from __future__ import annotations

import logging
from typing import Dict, List, Optional
from uuid import UUID

from alleye.core.errors import NotFoundError, ValidationFailedError
from alleye.db.models import Content, Playlist, Profile, UserAssignment
from alleye.repositories.content import AssignmentRepository, ContentRepository, PlaylistRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.content import ContentCreate, ContentUpdate, check_content_rules
from alleye.schemas.playlist import AssignmentCreate, PlaylistCreate, PlaylistUpdate
from alleye.services.base import BaseService
from alleye.services.realtime import publish_safely, serialize_row

logger = logging.getLogger(__name__)


class CatalogService(BaseService):
    """
    Content, playlists and assignments.

    Learner-facing reads always apply the organization visibility rule:
    an item is visible when its assigned_org_ids is empty or lists the
    learner's organization.
    """

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.content = ContentRepository(session)
        self.playlists = PlaylistRepository(session)
        self.assignments = AssignmentRepository(session)
        self.profiles = ProfileRepository(session)

    # ---- content ----------------------------------------------------------

    # PUBLIC_INTERFACE
    async def list_content(self, **filters) -> List[Content]:
        """Admin listing, newest first."""
        return await self.content.list(**filters)

    # PUBLIC_INTERFACE
    async def catalog_for(
        self, profile: Profile, content_type: Optional[str] = None, category: Optional[str] = None
    ) -> List[Content]:
        """Learner catalog: content visible to the profile's organization."""
        if profile.role == "admin":
            return await self.content.list(content_type=content_type, category=category, limit=1000)
        return await self.content.list_visible(
            profile.organization_id, content_type=content_type, category=category
        )

    # PUBLIC_INTERFACE
    async def get_content_for(self, profile: Profile, content_id: UUID) -> Content:
        """Fetch one item; invisible items look exactly like missing ones."""
        if profile.role == "admin":
            item = await self.content.get(content_id)
        else:
            item = await self.content.get_visible(content_id, profile.organization_id)
        if item is None:
            raise NotFoundError("Content not found")
        return item

    # PUBLIC_INTERFACE
    async def create_content(self, payload: ContentCreate, creator: Profile) -> Content:
        values = payload.model_dump()
        values["creator_id"] = creator.id
        item = await self.content.create(**values)
        logger.info("Content %s created (%s)", item.id, item.type)
        await publish_safely("content", "INSERT", new=item)
        return item

    # PUBLIC_INTERFACE
    async def update_content(self, content_id: UUID, payload: ContentUpdate) -> Content:
        item = await self.content.get(content_id)
        if item is None:
            raise NotFoundError("Content not found")
        values = payload.model_dump(exclude_unset=True)
        for key in ("title", "type", "difficulty", "duration_sec", "passing_score", "visibility"):
            if key in values and values[key] is None:
                values.pop(key)
        for key in ("tags", "risk_tags", "compliance", "assigned_org_ids", "questions"):
            if key in values and values[key] is None:
                values[key] = []

        merged_type = values.get("type", item.type)
        merged_questions = values.get("questions", item.questions or [])
        try:
            check_content_rules(
                merged_type,
                merged_questions,
                values.get("html_content", item.html_content),
                values.get("content_url", item.content_url),
            )
        except ValueError as exc:
            raise ValidationFailedError(str(exc))

        old = serialize_row(item)
        item = await self.content.apply(item, values)
        await publish_safely("content", "UPDATE", new=item, old=old)
        return item

    # PUBLIC_INTERFACE
    async def delete_content(self, content_id: UUID) -> None:
        item = await self.content.get(content_id)
        if item is None:
            raise NotFoundError("Content not found")
        old = serialize_row(item)
        await self.content.remove(item)
        # Keep playlists consistent with the catalog
        for playlist in await self.playlists.list():
            if content_id in (playlist.content_ids or []):
                before = serialize_row(playlist)
                remaining = [c for c in playlist.content_ids if c != content_id]
                playlist = await self.playlists.apply(playlist, {"content_ids": remaining})
                await publish_safely("playlists", "UPDATE", new=playlist, old=before)
        await publish_safely("content", "DELETE", old=old)

    # ---- playlists --------------------------------------------------------

    async def _check_content_ids(self, ids: List[UUID]) -> None:
        if not ids:
            return
        found = {c.id for c in await self.content.list_by_ids(ids)}
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise ValidationFailedError("Unknown content ids", {"missing": missing})

    # PUBLIC_INTERFACE
    async def playlists_for(self, profile: Profile) -> List[Playlist]:
        if profile.role == "admin":
            return await self.playlists.list()
        return await self.playlists.list_visible(profile.organization_id)

    # PUBLIC_INTERFACE
    async def get_playlist_for(self, profile: Profile, playlist_id: UUID) -> Playlist:
        playlist = await self.playlists.get(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")
        if profile.role != "admin":
            orgs = playlist.assigned_org_ids or []
            if orgs and profile.organization_id not in orgs:
                raise NotFoundError("Playlist not found")
        return playlist

    # PUBLIC_INTERFACE
    async def playlist_content_for(self, profile: Profile, playlist: Playlist) -> List[Content]:
        """Content of a playlist in playlist order, restricted to what the profile may see."""
        ids = list(playlist.content_ids or [])
        items = await self.content.list_by_ids(
            ids, profile.organization_id, restrict=profile.role != "admin"
        )
        by_id: Dict[UUID, Content] = {c.id: c for c in items}
        return [by_id[i] for i in ids if i in by_id]

    # PUBLIC_INTERFACE
    async def create_playlist(self, payload: PlaylistCreate, creator: Profile) -> Playlist:
        await self._check_content_ids(payload.content_ids)
        playlist = await self.playlists.create(**payload.model_dump(), creator_id=creator.id)
        await publish_safely("playlists", "INSERT", new=playlist)
        return playlist

    # PUBLIC_INTERFACE
    async def update_playlist(self, playlist_id: UUID, payload: PlaylistUpdate) -> Playlist:
        playlist = await self.playlists.get(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")
        values = payload.model_dump(exclude_unset=True)
        if values.get("title") is None:
            values.pop("title", None)
        for key in ("content_ids", "assigned_org_ids"):
            if key in values and values[key] is None:
                values[key] = []
        if values.get("content_ids"):
            await self._check_content_ids(values["content_ids"])
        old = serialize_row(playlist)
        playlist = await self.playlists.apply(playlist, values)
        await publish_safely("playlists", "UPDATE", new=playlist, old=old)
        return playlist

    # PUBLIC_INTERFACE
    async def delete_playlist(self, playlist_id: UUID) -> None:
        playlist = await self.playlists.get(playlist_id)
        if playlist is None:
            raise NotFoundError("Playlist not found")
        old = serialize_row(playlist)
        await self.playlists.remove(playlist)
        await publish_safely("playlists", "DELETE", old=old)

    # ---- assignments ------------------------------------------------------

    # PUBLIC_INTERFACE
    async def create_assignment(self, payload: AssignmentCreate, assigned_by: Profile) -> UserAssignment:
        if await self.profiles.get(payload.user_id) is None:
            raise NotFoundError("User not found")
        if payload.content_id is not None and await self.content.get(payload.content_id) is None:
            raise NotFoundError("Content not found")
        if payload.playlist_id is not None and await self.playlists.get(payload.playlist_id) is None:
            raise NotFoundError("Playlist not found")
        assignment = await self.assignments.create(**payload.model_dump(), assigned_by=assigned_by.id)
        logger.info("Assignment %s created for user %s", assignment.id, assignment.user_id)
        return assignment

    # PUBLIC_INTERFACE
    async def delete_assignment(self, assignment_id: UUID) -> None:
        assignment = await self.assignments.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        await self.assignments.remove(assignment)

    # PUBLIC_INTERFACE
    async def assignments_for_user(self, user_id: UUID) -> List[UserAssignment]:
        return await self.assignments.list_for_user(user_id)

    # PUBLIC_INTERFACE
    async def assigned_content_for(self, profile: Profile) -> List[Content]:
        """
        Directly assigned content plus every item of every assigned playlist,
        deduplicated in assignment order and restricted to visible content.
        """
        ordered: List[UUID] = []
        seen = set()

        def _push(cid: UUID) -> None:
            if cid not in seen:
                seen.add(cid)
                ordered.append(cid)

        assignments = await self.assignments.list_for_user(profile.id)
        playlist_ids = [a.playlist_id for a in assignments if a.playlist_id is not None]
        playlists = {p.id: p for p in await self.playlists.list_by_ids(playlist_ids)}
        for a in assignments:
            if a.content_id is not None:
                _push(a.content_id)
            elif a.playlist_id in playlists:
                for cid in playlists[a.playlist_id].content_ids or []:
                    _push(cid)

        items = await self.content.list_by_ids(
            ordered, profile.organization_id, restrict=profile.role != "admin"
        )
        by_id = {c.id: c for c in items}
        return [by_id[i] for i in ordered if i in by_id]
