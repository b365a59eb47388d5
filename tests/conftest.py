"""Shared pytest fixtures for ntrn tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path → content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


PAGES_ROUTER_FILES = {
    "package.json": json.dumps(
        {
            "name": "shop",
            "version": "1.2.0",
            "scripts": {"dev": "next dev", "build": "next build"},
            "dependencies": {
                "next": "14.2.0",
                "react": "18.2.0",
                "react-dom": "18.2.0",
                "tailwindcss": "3.4.0",
                "zustand": "4.5.0",
                "swr": "2.2.0",
            },
            "devDependencies": {"jest": "29.0.0", "typescript": "5.4.0"},
        }
    ),
    "tsconfig.json": json.dumps(
        {"compilerOptions": {"strict": True, "paths": {"@/*": ["./*"]}}}
    ),
    "tailwind.config.js": "module.exports = { theme: { extend: {} } }\n",
    "pages/index.tsx": (
        "import Header from '../components/Header';\n"
        "export default function Home() {\n"
        "  return <div><Header title=\"Shop\" onMenu={() => {}} /></div>;\n"
        "}\n"
    ),
    "pages/about.tsx": "export default function About() { return <p>About</p>; }\n",
    "pages/products/[id].tsx": (
        "export async function getServerSideProps() { return { props: {} }; }\n"
        "export default function Product() { return <div>Product</div>; }\n"
    ),
    "pages/_app.tsx": "export default function App({ Component }) { return <Component />; }\n",
    "pages/api/products.ts": (
        "export default function handler(req, res) {\n"
        "  if (req.method === 'POST') { res.status(201).end(); }\n"
        "  res.json([]);\n"
        "}\n"
    ),
    "components/Header.tsx": (
        "import Button from './Button';\n"
        "interface HeaderProps { title: string; onMenu?: () => void }\n"
        "export default function Header({ title, onMenu }: HeaderProps) {\n"
        "  return <header><h1>{title}</h1><Button label=\"Menu\" onPress={onMenu} /></header>;\n"
        "}\n"
    ),
    "components/Button.tsx": (
        "type ButtonProps = { label: string; onPress?: () => void };\n"
        "export default function Button({ label, onPress }: ButtonProps) {\n"
        "  return <button onClick={onPress}>{label}</button>;\n"
        "}\n"
    ),
    "components/Footer.jsx": "export default function Footer() { return <footer />; }\n",
    "components/Header.test.tsx": "test('renders', () => {});\n",
    "hooks/useCart.ts": "import { useState } from 'react';\nexport function useCart() { return useState([]); }\n",
    "utils/format.ts": "export const format = (n: number) => n.toFixed(2);\n",
    "styles/globals.css": "body { margin: 0; }\n",
    "public/logo.png": "png",
    "public/fonts/Inter.ttf": "ttf",
    "public/robots.txt": "User-agent: *\n",
    ".env.local": "NEXT_PUBLIC_API_URL=https://example.com\nSECRET=abc\n",
    "node_modules/react/index.js": "module.exports = {};\n",
}


APP_ROUTER_FILES = {
    "package.json": json.dumps({"name": "dash", "dependencies": {"next": "14.2.0"}}),
    "next.config.js": (
        "module.exports = {\n"
        "  images: { unoptimized: true },\n"
        "  async redirects() { return [{ source: '/old', destination: '/new' }]; },\n"
        "};\n"
    ),
    "app/layout.tsx": "export default function RootLayout({ children }) { return children; }\n",
    "app/page.tsx": "export default function Page() { return <main>Home</main>; }\n",
    "app/loading.tsx": "export default function Loading() { return null; }\n",
    "app/dashboard/page.tsx": "export default function Dashboard() { return <div>Dash</div>; }\n",
    "app/(auth)/login/page.tsx": "export default function Login() { return <form />; }\n",
    "app/blog/[...slug]/page.tsx": "export default function Post() { return <article />; }\n",
    "app/api/users/route.ts": (
        "export async function GET() { return Response.json([]); }\n"
        "export async function POST() { return Response.json({}); }\n"
    ),
    "app/api/users/[id]/route.ts": "export async function DELETE() { return new Response(); }\n",
}


@pytest.fixture
def pages_project(tmp_path: Path) -> Path:
    return write_tree(tmp_path / "shop", PAGES_ROUTER_FILES)


@pytest.fixture
def app_project(tmp_path: Path) -> Path:
    return write_tree(tmp_path / "dash", APP_ROUTER_FILES)
