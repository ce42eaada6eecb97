"""Bump the engine version everywhere it is declared.

Every declaration is checked before any file is rewritten, so a failed bump
leaves all versions untouched.

Use:  python scripts/bump_version.py [major|minor|patch]
"""
import argparse
import re
import sys
from pathlib import Path

SEMVER = r'([0-9]+)\.([0-9]+)\.([0-9]+)'

# (file relative to the project root, pattern capturing the version, replacement template)
VERSION_SITES = (
    (Path('escalation_engine/config.py'), re.compile(r'ENGINE_VERSION: str = "' + SEMVER + '"'), 'ENGINE_VERSION: str = "{}"'),
    (Path('escalation_engine/__init__.py'), re.compile(r'__version__ = "' + SEMVER + '"'), '__version__ = "{}"'),
    (Path('pyproject.toml'), re.compile(r'^version = "' + SEMVER + '"', re.M), 'version = "{}"'),
)


def next_version(current: str, part: str) -> str:
    major, minor, patch = (int(x) for x in current.split('.'))
    if part == 'major':
        return f'{major + 1}.0.0'
    if part == 'minor':
        return f'{major}.{minor + 1}.0'
    return f'{major}.{minor}.{patch + 1}'


def current_version(root: Path = Path('.')) -> str:
    path, pattern, _ = VERSION_SITES[0]
    m = pattern.search((root / path).read_text(encoding='utf-8'))
    if not m:
        raise SystemExit(f'No version declaration found in {path}')
    return '.'.join(m.groups())


def bump(part: str, root: Path = Path('.')) -> str:
    new_version = next_version(current_version(root), part)
    pending = []
    for path, pattern, template in VERSION_SITES:
        target = root / path
        updated, n = pattern.subn(template.format(new_version), target.read_text(encoding='utf-8'))
        if n != 1:
            raise SystemExit(f'Expected one version declaration in {path}, found {n}')
        pending.append((target, updated))
    for target, updated in pending:
        target.write_text(updated, encoding='utf-8')
    return new_version


def main():
    ap = argparse.ArgumentParser(description='Bump the engine version')
    ap.add_argument('part', choices=['major', 'minor', 'patch'])
    args = ap.parse_args()
    print(bump(args.part))


if __name__ == '__main__':
    main()
