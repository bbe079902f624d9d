"""
Database seeding utilities for a demo catalog.

Seeds:
- Sample organization (LMS Corp)
- Six cybersecurity videos, three of them carrying quizzes
- One threat-intel news item

Every step is idempotent: rows are looked up by natural key before insert.

Usage:
  python -m alleye.db.run_migrations upgrade head
  python -m alleye.db.seed
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.db.session import get_async_session

logger = logging.getLogger(__name__)

SAMPLE_ORGANIZATION = {
    "name": "LMS Corp",
    "domain": "lms.com",
    "theme_color": "#1E40AF",
}

_VIDEO_BUCKET_BASE = "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample"
_THUMB_BASE = "https://images.unsplash.com"

SAMPLE_CATALOG: List[Dict[str, Any]] = [
    {
        "title": "Introduction to Cybersecurity",
        "description": "Learn the fundamentals of cybersecurity and why it matters in today's digital world.",
        "duration_sec": 8 * 60 + 45,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1550751827-4bd374c3f58b?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/BigBuckBunny.mp4",
        "category": "Fundamentals",
        "difficulty": "Beginner",
        "questions": [
            {
                "id": "q1-1",
                "question": "What is the primary goal of cybersecurity?",
                "options": [
                    "To make systems faster",
                    "To protect systems and data from threats",
                    "To reduce costs",
                    "To increase user experience",
                ],
                "correct_answer": 1,
            },
            {
                "id": "q1-2",
                "question": "Which of the following is NOT a common cyber threat?",
                "options": ["Malware", "Phishing", "Software updates", "Ransomware"],
                "correct_answer": 2,
            },
            {
                "id": "q1-3",
                "question": "What does CIA stand for in cybersecurity?",
                "options": [
                    "Computer Internet Access",
                    "Confidentiality, Integrity, Availability",
                    "Cyber Intelligence Agency",
                    "Critical Information Assets",
                ],
                "correct_answer": 1,
            },
        ],
    },
    {
        "title": "Password Security Best Practices",
        "description": "Master the art of creating and managing secure passwords to protect your digital identity.",
        "duration_sec": 12 * 60 + 30,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1614064641938-3bbee52942c7?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/ElephantsDream.mp4",
        "category": "Authentication",
        "difficulty": "Beginner",
        "questions": [
            {
                "id": "q2-1",
                "question": "What is the recommended minimum length for a strong password?",
                "options": ["6 characters", "8 characters", "12 characters", "20 characters"],
                "correct_answer": 2,
            },
            {
                "id": "q2-2",
                "question": "Which of these is the MOST secure password?",
                "options": ["password123", "MyDog2024", "Tr0ub4dor&3", "correct horse battery staple"],
                "correct_answer": 3,
            },
        ],
    },
    {
        "title": "Phishing Attack Detection",
        "description": "Identify and prevent phishing attempts that target you and your organization.",
        "duration_sec": 15 * 60 + 20,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1563986768609-322da13575f3?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/ForBiggerBlazes.mp4",
        "category": "Threats",
        "difficulty": "Intermediate",
        "questions": [
            {
                "id": "q3-1",
                "question": "What is a common sign of a phishing email?",
                "options": [
                    "Professional formatting",
                    "Urgent requests for personal information",
                    "Company logo present",
                    "Proper grammar",
                ],
                "correct_answer": 1,
            },
            {
                "id": "q3-2",
                "question": "What should you do if you suspect a phishing attempt?",
                "options": [
                    "Click the link to investigate",
                    "Reply asking if it's legitimate",
                    "Report it and delete it",
                    "Forward it to colleagues",
                ],
                "correct_answer": 2,
            },
        ],
    },
    {
        "title": "Network Security Fundamentals",
        "description": "Understand how to secure network infrastructure and protect data in transit.",
        "duration_sec": 18 * 60 + 15,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1558494949-ef010cbdcc31?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/ForBiggerEscapes.mp4",
        "category": "Networks",
        "difficulty": "Intermediate",
        "questions": [],
    },
    {
        "title": "Advanced Threat Detection",
        "description": "Learn advanced techniques for identifying and responding to sophisticated cyber threats.",
        "duration_sec": 22 * 60 + 45,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1526374965328-7f61d4dc18c5?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/ForBiggerJoyrides.mp4",
        "category": "Advanced Topics",
        "difficulty": "Advanced",
        "questions": [],
    },
    {
        "title": "Incident Response Procedures",
        "description": "Master the steps to effectively respond to and recover from security incidents.",
        "duration_sec": 20 * 60 + 10,
        "thumbnail_url": f"{_THUMB_BASE}/photo-1504868584819-f8e8b4b6d7e3?w=800&h=450&fit=crop",
        "content_url": f"{_VIDEO_BUCKET_BASE}/ForBiggerMeltdowns.mp4",
        "category": "Response",
        "difficulty": "Advanced",
        "questions": [],
    },
]

SAMPLE_NEWS = {
    "title": "Credential phishing campaign targeting payroll teams",
    "summary": "Attackers impersonate HR platforms to harvest single sign-on credentials.",
    "body": (
        "Several organizations report emails asking staff to confirm payroll details through "
        "a look-alike login page. Verify the sender domain and report suspicious messages."
    ),
    "category": "Phishing",
    "severity": "high",
}


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with a sample organization, catalog and news item.
    """
    async for session in get_async_session():
        org_id = await _ensure_organization(session, SAMPLE_ORGANIZATION)
        created = await _seed_catalog(session, SAMPLE_CATALOG)
        await _seed_news(session, SAMPLE_NEWS)
        await session.commit()
        logger.info("Seeded organization %s and %d content items", org_id, created)


async def _ensure_organization(session: AsyncSession, org: Dict[str, Any]) -> UUID:
    await session.execute(
        text(
            """
            INSERT INTO organizations (name, domain, theme_color)
            VALUES (:name, :domain, :theme_color)
            ON CONFLICT ON CONSTRAINT uq_organizations_name DO NOTHING
            """
        ),
        org,
    )
    res = await session.execute(text("SELECT id FROM organizations WHERE name = :name"), {"name": org["name"]})
    row = res.first()
    if not row:
        raise RuntimeError("Failed to create or load sample organization")
    return row[0]


def _content_type(item: Dict[str, Any]) -> str:
    return "video_quiz" if item["questions"] else "video"


async def _seed_catalog(session: AsyncSession, items: List[Dict[str, Any]]) -> int:
    """Insert catalog items that are not present yet (matched by title)."""
    created = 0
    for item in items:
        res = await session.execute(text("SELECT 1 FROM content WHERE title = :title"), {"title": item["title"]})
        if res.first():
            continue
        await session.execute(
            text(
                """
                INSERT INTO content (
                    title, description, type, content_url, thumbnail_url, category,
                    difficulty, duration_sec, passing_score, questions
                )
                VALUES (
                    :title, :description, :type, :content_url, :thumbnail_url, :category,
                    :difficulty, :duration_sec, 70, CAST(:questions AS jsonb)
                )
                """
            ),
            {
                **{k: v for k, v in item.items() if k != "questions"},
                "type": _content_type(item),
                "questions": json.dumps(item["questions"]),
            },
        )
        created += 1
    return created


async def _seed_news(session: AsyncSession, news: Dict[str, Any]) -> None:
    res = await session.execute(text("SELECT 1 FROM news WHERE title = :title"), {"title": news["title"]})
    if res.first():
        return
    await session.execute(
        text(
            """
            INSERT INTO news (title, summary, body, category, severity)
            VALUES (:title, :summary, :body, :category, :severity)
            """
        ),
        news,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_all())
