"""Shared fixtures: throwaway Node.js projects on disk."""
import json
from pathlib import Path

import pytest


@pytest.fixture
def make_project(tmp_path: Path):
    """Build a project directory from a package.json dict plus extra files.

    ``files`` maps relative paths to text content; dict values are written as JSON.
    """

    def _make(package_json=None, files=None, name: str = "app") -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if package_json is not None:
            content = package_json if isinstance(package_json, str) else json.dumps(package_json, indent=2)
            (root / "package.json").write_text(content, encoding="utf-8")
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, (dict, list)):
                content = json.dumps(content, indent=2)
            path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def nextjs_project(make_project):
    """A plain Next.js + Tailwind + ESLint project with tsconfig and a JS next config."""
    return make_project(
        {
            "name": "legacy-app",
            "version": "1.0.0",
            "dependencies": {"next": "14.2.0", "react": "18.2.0", "react-dom": "18.2.0"},
            "devDependencies": {
                "typescript": "5.3.0",
                "tailwindcss": "3.4.0",
                "autoprefixer": "10.4.0",
                "eslint": "8.57.0",
                "eslint-config-next": "14.2.0",
                "prettier": "3.2.0",
            },
        },
        files={
            "next.config.js": "module.exports = { reactStrictMode: true };\n",
            "tsconfig.json": {"compilerOptions": {"strict": False, "lib": ["dom"]}, "include": ["**/*.ts"]},
            "tailwind.config.js": "module.exports = { content: [] };\n",
            "postcss.config.js": "module.exports = { plugins: { tailwindcss: {}, autoprefixer: {} } };\n",
            ".eslintrc.json": {"extends": "next/core-web-vitals"},
            ".prettierrc": "{}\n",
            "src/app/globals.css": "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n\nbody { margin: 0; }\n",
        },
    )


@pytest.fixture
def read_json():
    def _read(path: Path):
        return json.loads(Path(path).read_text(encoding="utf-8"))

    return _read
