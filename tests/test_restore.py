import os

from barmancloud_plugin.restore import (
    ShortBackupCatalogEntry,
    restore_custom_wal_dir,
    shortened_catalog,
)


def test_shortened_catalog_none():
    assert shortened_catalog(None) == []


def test_shortened_catalog_keeps_order_and_fields():
    catalog = [
        {"backup_name": "b1", "begin_time": "t1", "end_time": "t2", "size": 10},
        {"backup_name": "b2", "begin_time": "t3", "end_time": "t4"},
    ]
    result = shortened_catalog(catalog)
    assert result == [
        ShortBackupCatalogEntry("b1", "t1", "t2"),
        ShortBackupCatalogEntry("b2", "t3", "t4"),
    ]


def test_entry_to_dict():
    entry = ShortBackupCatalogEntry("b1", "t1", "t2")
    assert entry.to_dict() == {"backupID": "b1", "startTime": "t1", "endTime": "t2"}


def test_restore_custom_wal_dir_moves_and_links(tmp_path):
    pgdata = tmp_path / "pgdata"
    wal = pgdata / "pg_wal"
    wal.mkdir(parents=True)
    (wal / "000000010000000000000001").write_text("segment")
    target = tmp_path / "walvolume" / "pg_wal"

    assert restore_custom_wal_dir(str(pgdata), str(target)) is True

    assert os.path.islink(wal)
    assert os.readlink(wal) == str(target)
    assert (target / "000000010000000000000001").read_text() == "segment"
    assert (wal / "000000010000000000000001").read_text() == "segment"


def test_restore_custom_wal_dir_creates_missing_pg_wal(tmp_path):
    pgdata = tmp_path / "pgdata"
    pgdata.mkdir()
    target = tmp_path / "target"

    assert restore_custom_wal_dir(str(pgdata), str(target)) is True
    assert os.readlink(pgdata / "pg_wal") == str(target)
    assert target.is_dir()


def test_restore_custom_wal_dir_skips_existing_link(tmp_path):
    pgdata = tmp_path / "pgdata"
    pgdata.mkdir()
    target = tmp_path / "target"
    target.mkdir()
    os.symlink(str(target), str(pgdata / "pg_wal"))

    assert restore_custom_wal_dir(str(pgdata), str(target)) is False
    assert os.readlink(pgdata / "pg_wal") == str(target)