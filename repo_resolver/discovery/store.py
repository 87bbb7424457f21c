"""Persistence of the canonical remote -> path index."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Tuple

from ..file_lock import FileLock
from ..platform import create_secure_temp_file


class RemoteIndexStore:
    """
    Reads and writes the index as a JSON list of ``[canonical_remote, path]`` pairs.

    A missing file is an empty index. Writes go to a temporary file that
    replaces the index in one step, under a lock shared by all processes.
    """

    def __init__(self, index_path: Path, lock_dir: Path):
        self.index_path = index_path
        self.lock_path = lock_dir / f"{index_path.name}.lock"
        self.logger = logging.getLogger('repo_resolver.discovery.store')

    def load(self) -> Dict[str, str]:
        if not self.index_path.exists():
            return {}

        try:
            raw = json.loads(self.index_path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable remote index {self.index_path}: {e}")
            return {}

        entries: Dict[str, str] = {}
        if not isinstance(raw, list):
            self.logger.warning(f"Ignoring malformed remote index {self.index_path}")
            return entries

        for item in raw:
            if isinstance(item, list) and len(item) == 2 and all(isinstance(v, str) for v in item):
                entries[item[0]] = item[1]
        self.logger.debug(f"Loaded {len(entries)} remote index entries from {self.index_path}")
        return entries

    def save(self, entries: Iterable[Tuple[str, str]]) -> None:
        pairs = [[remote, path] for remote, path in entries]
        payload = json.dumps(pairs, indent=1)

        with FileLock(self.lock_path):
            fd, temp_path = create_secure_temp_file(self.index_path.parent, suffix='.json.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(payload)
                os.replace(temp_path, self.index_path)
            except OSError:
                temp_path.unlink(missing_ok=True)
                raise

        self.logger.debug(f"Saved {len(pairs)} remote index entries to {self.index_path}")
