"""Helpers used while restoring a cluster from an object store."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SCRATCH_DATA_DIRECTORY = "/controller"
RECOVERY_TEMPORARY_DIRECTORY = SCRATCH_DATA_DIRECTORY + "/recovery"
PG_WAL_DIRECTORY = "pg_wal"


@dataclass
class ShortBackupCatalogEntry:
    """The fields of a catalog entry worth logging."""

    backup_id: str
    start_time: Any
    end_time: Any

    def to_dict(self) -> dict[str, Any]:
        """The entry in its JSON form."""
        return {
            "backupID": self.backup_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


def shortened_catalog(
    catalog: Iterable[Mapping[str, Any]] | None,
) -> list[ShortBackupCatalogEntry]:
    """Reduce the backups of a catalog to their name and times."""
    if catalog is None:
        return []
    return [
        ShortBackupCatalogEntry(
            backup_id=entry.get("backup_name", ""),
            start_time=entry.get("begin_time"),
            end_time=entry.get("end_time"),
        )
        for entry in catalog
    ]


def _read_link(path: str) -> str:
    try:
        return os.readlink(path)
    except OSError:
        return ""


def restore_custom_wal_dir(pg_data_path: str, pg_wal_folder_to_symlink: str) -> bool:
    """Move pg_wal into the WAL volume and leave a symlink to it in its place.

    Returns whether anything was changed.
    """
    pg_data_wal = os.path.join(pg_data_path, PG_WAL_DIRECTORY)

    if _read_link(pg_data_wal) == pg_wal_folder_to_symlink:
        logger.info("symlink to the WAL volume already present, skipping the custom wal dir restore")
        return False

    os.makedirs(pg_wal_folder_to_symlink, exist_ok=True)

    logger.info("restoring WAL volume symlink and transferring data")
    os.makedirs(pg_data_wal, exist_ok=True)

    for entry in os.listdir(pg_data_wal):
        shutil.move(os.path.join(pg_data_wal, entry), os.path.join(pg_wal_folder_to_symlink, entry))

    if os.path.isdir(pg_data_wal) and not os.path.islink(pg_data_wal):
        os.rmdir(pg_data_wal)
    elif os.path.lexists(pg_data_wal):
        os.remove(pg_data_wal)

    os.symlink(pg_wal_folder_to_symlink, pg_data_wal)
    return True