"""Shared test fixtures for Codeatlas."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


USERS_ROUTE = (
    "import { client } from '../db/client';\n"
    "\n"
    "export async function GET() {\n"
    "  return Response.json(await client.from('users'));\n"
    "}\n"
)

DB_CLIENT = (
    "import { createClient } from '@supabase/supabase-js';\n"
    "\n"
    "const supabase = createClient(process.env.DB_URL!, process.env.DB_KEY!);\n"
    "\n"
    "export const client = {\n"
    "  from: (table: string) => supabase.from(table).select('*'),\n"
    "};\n"
)


@pytest.fixture()
def users_project(tmp_path: Path) -> Path:
    """Two files: an API route importing a database client that talks to Supabase."""
    project = tmp_path / "proj"
    return write_tree(project, {"api/users.ts": USERS_ROUTE, "db/client.ts": DB_CLIENT})


@pytest.fixture()
def web_project(tmp_path: Path) -> Path:
    """A small full-stack layout with routes, pages, components, hooks and a store."""
    project = tmp_path / "web"
    return write_tree(
        project,
        {
            "server/index.ts": (
                "import { backlogRoutes } from './routes/backlog';\n"
                "import { issueRoutes } from './routes/issues';\n"
                "export function startServer() {\n"
                "  return [backlogRoutes, issueRoutes];\n"
                "}\n"
            ),
            "server/routes/backlog.ts": (
                "import { listItems, saveItem } from '../store/items';\n"
                "export const backlogRoutes = router;\n"
                "router.get('/', () => listItems());\n"
                "router.post('/', (c) => saveItem(c));\n"
            ),
            "server/routes/issues.ts": (
                "import { listItems } from '../store/items';\n"
                "export const issueRoutes = router;\n"
                "router.get('/', () => listItems());\n"
            ),
            "server/routes/github.ts": (
                "export const githubRoutes = router;\n"
                "router.get('/', () => fetch('https://api.github.com/repos/x/y'));\n"
            ),
            "server/store/items.ts": (
                "export function listItems() {\n"
                "  return db.select();\n"
                "}\n"
                "export function saveItem(item: unknown) {\n"
                "  return db.insert(item);\n"
                "}\n"
                "export function dropItem(id: string) {\n"
                "  return db.delete(id);\n"
                "}\n"
            ),
            "ui/src/views/Backlog.tsx": (
                "import { ItemCard } from '../components/ItemCard';\n"
                "import { useItems } from '../hooks/useItems';\n"
                "export default function Backlog() {\n"
                "  const items = useItems();\n"
                "  return <div>{items.map((i) => <ItemCard item={i} />)}</div>;\n"
                "}\n"
            ),
            "ui/src/views/Issues.tsx": (
                "import { ItemCard } from '../components/ItemCard';\n"
                "export default function Issues() {\n"
                "  return <ItemCard item={null} />;\n"
                "}\n"
            ),
            "ui/src/views/Settings.tsx": (
                "export default function Settings() {\n"
                "  return <form />;\n"
                "}\n"
            ),
            "ui/src/components/ItemCard.tsx": (
                "export const ItemCard = ({ item }: { item: unknown }) =>\n"
                "  <div>{String(item)}</div>;\n"
            ),
            "ui/src/components/Badge.tsx": (
                "export function Badge() {\n"
                "  return <span />;\n"
                "}\n"
            ),
            "ui/src/components/Modal.tsx": (
                "export function Modal() {\n"
                "  return <dialog />;\n"
                "}\n"
            ),
            "ui/src/hooks/useItems.ts": (
                "import { useEffect, useState } from 'react';\n"
                "export function useItems() {\n"
                "  const [items, setItems] = useState([]);\n"
                "  useEffect(() => {\n"
                "    fetch('/api/v1/backlog').then((r) => r.json()).then(setItems);\n"
                "  }, []);\n"
                "  return items;\n"
                "}\n"
            ),
            "shared/types.ts": "export interface Item {\n  id: string;\n}\n",
            "node_modules/react/index.js": "export default {};\n",
            "README.md": "# web\n",
        },
    )


@pytest.fixture()
def make_tree(tmp_path: Path):  # noqa: ANN201
    """Factory: ``make_tree({"a.ts": "..."})`` builds a project under ``tmp_path/proj``."""

    def _make(files: dict[str, str], name: str = "proj") -> Path:
        return write_tree(tmp_path / name, files)

    return _make
