"""
Personalized next-content suggestions from an OpenAI-compatible completion API.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from openai import AsyncOpenAI

from alleye.core.errors import ExternalServiceError
from alleye.db.models import Content, Profile
from alleye.schemas.recommendation import Recommendation
from alleye.services.base import BaseService
from alleye.repositories.content import ContentRepository
from alleye.services.catalog import CatalogService
from alleye.services.progress import progress_content_ids

logger = logging.getLogger(__name__)

RECOMMENDATION_FAILURE = "Could not fetch recommendations at this time."

SYSTEM_PROMPT = (
    "You are a learning advisor for a security-awareness training platform. "
    "Pick the next items a learner should study from the AVAILABLE list only. "
    'Answer with JSON: {"recommendations": [{"id": "<available id>", "reason": "<one sentence>"}]}.'
)


# PUBLIC_INTERFACE
def build_prompt(history: List[str], available: List[Dict[str, Any]], max_items: int) -> str:
    """User message listing completed titles and the candidate items."""
    return (
        f"Completed so far: {json.dumps(history)}\n"
        f"AVAILABLE: {json.dumps(available)}\n"
        f"Recommend at most {max_items} items, most useful first."
    )


# PUBLIC_INTERFACE
def parse_recommendations(raw: str) -> List[Dict[str, Any]]:
    """
    Accept either a bare JSON array or a {"recommendations": [...]} wrapper.

    Raises ValueError on anything else.
    """
    data = json.loads(raw)
    if isinstance(data, dict):
        data = data.get("recommendations")
    if not isinstance(data, list):
        raise ValueError("Recommendation payload is not a list")
    return [item for item in data if isinstance(item, dict)]


class RecommendationService(BaseService):
    """Asks the completion API which visible, not yet completed items to suggest."""

    def __init__(self, session, settings=None, client: Optional[AsyncOpenAI] = None) -> None:
        super().__init__(session, settings)
        self.catalog = CatalogService(session, self.settings)
        self.content = ContentRepository(session)
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.RECOMMENDER_API_KEY,
                base_url=self.settings.RECOMMENDER_BASE_URL,
                timeout=self.settings.RECOMMENDER_TIMEOUT_SECONDS,
            )
        return self._client

    # PUBLIC_INTERFACE
    async def recommend(self, profile: Profile) -> List[Recommendation]:
        progress = profile.progress or {}
        completed_keys = {
            k for k, e in progress.items() if isinstance(e, dict) and e.get("status") == "completed"
        }
        # History covers every completed item, including ones no longer assigned
        done = await self.content.list_by_ids(
            progress_content_ids({k: progress[k] for k in completed_keys})
        )
        history = [c.title for c in done]
        visible = await self.catalog.catalog_for(profile)
        candidates: Dict[str, Content] = {
            str(c.id): c for c in visible if str(c.id) not in completed_keys
        }
        if not candidates:
            return []

        max_items = self.settings.RECOMMENDER_MAX_ITEMS
        available = [
            {"id": cid, "title": c.title, "category": c.category, "difficulty": c.difficulty}
            for cid, c in candidates.items()
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.RECOMMENDER_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(history, available, max_items)},
                ],
                temperature=0.3,
                response_format={"type": "json_object"},
            )
            items = parse_recommendations(response.choices[0].message.content or "")
        except Exception as exc:
            logger.exception("Recommendation request failed for profile %s", profile.id)
            raise ExternalServiceError("recommender", RECOMMENDATION_FAILURE, str(exc))

        out: List[Recommendation] = []
        seen = set()
        for item in items:
            cid = str(item.get("id", ""))
            content = candidates.get(cid)
            if content is None or cid in seen:
                logger.debug("Dropping unknown recommendation id %s", cid)
                continue
            seen.add(cid)
            out.append(
                Recommendation(
                    id=UUID(cid),
                    title=content.title,
                    category=content.category,
                    difficulty=content.difficulty,
                    thumbnail_url=content.thumbnail_url,
                    reason=str(item.get("reason") or ""),
                )
            )
            if len(out) >= max_items:
                break
        return out
