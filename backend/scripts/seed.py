#!/usr/bin/env python3
"""
Seed script to fill the Projects table with sample projects.

Creates a handful of realistic dashboard entries: mixed pro/perso types,
categories with inconsistent casing, links, notes and todo lists, so that
filters, the all-todos view and narration have something to work on.

Usage:
    python -m scripts.seed [--clear] [--copies N]

Options:
    --clear      Delete existing projects before seeding
    --copies N   Insert the sample set N times (default: 1)
"""

import argparse
import asyncio
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlmodel import select

from projectdeck.database import dispose_db, get_session_context, init_db
from projectdeck.models import Project
from projectdeck.schemas import LogEntry, ProjectCreate, TodoItem


SAMPLE_PROJECTS = [
    {
        "title": "ToutesMesApps",
        "description": "Dashboard central de tous mes projets avec filtres et viewer fullscreen.",
        "type": "perso",
        "categories": ["formation"],
        "github_link": "https://github.com/devgitbrice/ToutesMesApps",
        "site_link": "https://toutesmesapps.vercel.app",
        "todos": ["Brancher la lecture auto", "Ajouter le mode liste"],
    },
    {
        "title": "NoteSpeak AI",
        "description": "Application de prise de notes avec lecture vocale et IA.",
        "type": "perso",
        "categories": ["Formation", "IA"],
        "github_link": "github.com/devgitbrice/NoteSpeakAi",
        "favorite": True,
        "todos": ["Tester les voix"],
    },
    {
        "title": "Gestion Appartement",
        "description": "Outil de suivi et gestion d'un appartement (charges, documents).",
        "type": "Pro",
        "categories": ["appartement"],
        "site_link": "https://gestion-appartement.vercel.app",
    },
    {
        "title": "Formation Web",
        "description": "Projet pédagogique pour apprendre le développement web moderne.",
        "type": "pro",
        "categories": ["formation"],
        "logs": ["Premier module terminé", "Ajout des exercices CSS"],
    },
]


def build_project(sample: dict, created_at: datetime) -> Project:
    """Turn a sample dict into a row, through the same normalization as the API."""
    fields = dict(sample)
    todos = [TodoItem(text=text) for text in fields.pop("todos", [])]
    logs = [
        LogEntry(date=created_at + timedelta(days=i), content=content)
        for i, content in enumerate(fields.pop("logs", []))
    ]
    # Most recent note first
    logs.reverse()
    draft = ProjectCreate(**fields, todos=todos, logs=logs)
    return Project(**draft.row_values(), created_at=created_at, updated_at=created_at)


async def clear_data():
    """Delete all existing projects."""
    print("Clearing existing projects...")
    async with get_session_context() as session:
        await session.execute(delete(Project))
    print("Projects cleared.")


async def insert_samples(copies: int) -> list[Project]:
    """Insert the sample set; later samples get later timestamps so they list first."""
    start = datetime.now(timezone.utc) - timedelta(minutes=len(SAMPLE_PROJECTS) * copies)
    projects = []
    async with get_session_context() as session:
        for copy in range(copies):
            for i, sample in enumerate(SAMPLE_PROJECTS):
                offset = copy * len(SAMPLE_PROJECTS) + i
                project = build_project(sample, start + timedelta(minutes=offset))
                if copies > 1:
                    project.title = f"{project.title} #{copy + 1}"
                session.add(project)
                projects.append(project)
    return projects


async def get_stats() -> None:
    """Print a summary of the Projects table."""
    async with get_session_context() as session:
        result = await session.execute(select(Project))
        projects = list(result.scalars().all())

    favorites = sum(1 for p in projects if p.favorite)
    todos = sum(len(p.todos) for p in projects)
    categories = sorted({c.lower() for p in projects for c in p.categories})

    print(f"\n=== Dashboard Statistics ===")
    print(f"Projects:    {len(projects)}")
    print(f"Favorites:   {favorites}")
    print(f"Open todos:  {todos}")
    print(f"Categories:  {', '.join(categories) or '-'}")


async def main():
    parser = argparse.ArgumentParser(description="Seed the Projects table with sample projects")
    parser.add_argument("--clear", action="store_true", help="Clear existing projects first")
    parser.add_argument("--copies", type=int, default=1, help="How many times to insert the sample set")

    args = parser.parse_args()

    print(f"=== ProjectDeck Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    projects = await insert_samples(max(1, args.copies))
    print(f"Inserted {len(projects)} projects")

    await get_stats()
    await dispose_db()

    print(f"\n=== Seeding Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
