#!/usr/bin/env python3
"""
Seed script to generate a work breakdown for manual and performance testing.

Creates one tenant and one project, then fills the project with a task tree:
- A handful of root tasks (phases)
- Each level fans out into subtasks
- One deliberately deep chain to exercise the ancestor walk

Usage:
    python -m scripts.seed [--tasks 500] [--depth 6] [--chain 200] [--clear]

Options:
    --tasks N    Approximate number of tasks in the breadth-first tree (default: 500)
    --depth D    Maximum depth of the tree (default: 6)
    --chain L    Length of the extra deep chain (default: 200, 0 to skip)
    --clear      Clear existing data before seeding
    --tenant     Slug of the tenant to create
"""

import argparse
import asyncio
import random
import time
import uuid

from sqlalchemy import text

from arbor.database import async_session_maker, init_db
from arbor.models import Tenant, Project, Task


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with async_session_maker() as session:
        await session.execute(text("DELETE FROM tasks"))
        await session.execute(text("DELETE FROM projects"))
        await session.execute(text("DELETE FROM tenants"))
        await session.commit()
    print("Data cleared.")


async def create_tenant_and_project(slug: str) -> tuple[Tenant, Project]:
    async with async_session_maker() as session:
        tenant = Tenant(name=slug.title(), slug=slug)
        session.add(tenant)
        await session.flush()

        project = Project(tenant_id=tenant.id, name="Seeded work breakdown", code="SEED")
        session.add(project)
        await session.commit()
        return tenant, project


def generate_tree(
    tenant_id: uuid.UUID,
    project_id: uuid.UUID,
    num_tasks: int,
    max_depth: int,
) -> list[Task]:
    """
    Generate tasks level by level so every parent precedes its children.

    Strategy:
    - Level 0 gets ~2% of the tasks as phases
    - Each following level picks random parents from the level above
    - Stops at max_depth or when num_tasks is reached
    """
    tasks: list[Task] = []
    num_roots = max(1, num_tasks // 50)

    level = [
        Task(tenant_id=tenant_id, project_id=project_id, name=f"Phase {i:02d}")
        for i in range(num_roots)
    ]
    tasks.extend(level)

    depth = 1
    while len(tasks) < num_tasks and depth < max_depth and level:
        next_level = []
        for parent in level:
            for j in range(random.randint(1, 5)):
                if len(tasks) + len(next_level) >= num_tasks:
                    break
                next_level.append(Task(
                    tenant_id=tenant_id,
                    project_id=project_id,
                    name=f"{parent.name}.{j + 1}",
                    parent_task_id=parent.id,
                ))
        tasks.extend(next_level)
        level = next_level
        depth += 1

    print(f"Generated {len(tasks)} tasks across {depth} levels")
    return tasks


def generate_chain(tenant_id: uuid.UUID, project_id: uuid.UUID, length: int) -> list[Task]:
    """A single deep path: Chain 0000 -> Chain 0001 -> ..."""
    chain = []
    parent_id = None
    for i in range(length):
        task = Task(
            tenant_id=tenant_id,
            project_id=project_id,
            name=f"Chain {i:04d}",
            parent_task_id=parent_id,
        )
        chain.append(task)
        parent_id = task.id
    return chain


async def insert_batch(tasks: list[Task]):
    """Insert tasks in batches, parents before children."""
    async with async_session_maker() as session:
        batch_size = 100

        print(f"Inserting {len(tasks)} tasks...")
        for i in range(0, len(tasks), batch_size):
            session.add_all(tasks[i:i + batch_size])
            await session.flush()

        await session.commit()


async def main():
    parser = argparse.ArgumentParser(description="Seed Arbor with a task hierarchy")
    parser.add_argument("--tasks", type=int, default=500, help="Number of tree tasks")
    parser.add_argument("--depth", type=int, default=6, help="Maximum tree depth")
    parser.add_argument("--chain", type=int, default=200, help="Length of the deep chain")
    parser.add_argument("--clear", action="store_true", help="Clear existing data")
    parser.add_argument("--tenant", type=str, default="demo", help="Tenant slug")
    args = parser.parse_args()

    start = time.time()

    await init_db()

    if args.clear:
        await clear_data()

    tenant, project = await create_tenant_and_project(args.tenant)
    print(f"Created tenant {tenant.slug} ({tenant.id}) and project {project.id}")

    tasks = generate_tree(tenant.id, project.id, args.tasks, args.depth)
    if args.chain:
        tasks.extend(generate_chain(tenant.id, project.id, args.chain))

    await insert_batch(tasks)

    elapsed = time.time() - start
    print(f"\nDone in {elapsed:.2f}s")
    print(f"Use header X-Tenant-ID: {tenant.id}")


if __name__ == "__main__":
    asyncio.run(main())
