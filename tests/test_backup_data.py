"""
Tests for the JSON backup and restore script
"""
import json
import pytest

import backup_data
from database.connection import get_db_session, drop_db, init_db
from database.models import Client, Order, OrderItem, Message


@pytest.mark.integration
class TestBackupRestore:
    """Tests for backup() and restore()"""

    def test_backup_writes_every_table(self, app, make_order, workdir):
        """Test the backup file lists every table with serialised rows"""
        order = make_order()
        payload = backup_data.backup(str(workdir / 'backup.json'))

        written = json.loads((workdir / 'backup.json').read_text())
        assert set(written['tables']) == {name for name, _ in backup_data.TABLES}
        assert written['tables']['orders'][0]['order_number'] == order['order_number']
        assert isinstance(written['tables']['orders'][0]['created_at'], str)
        assert payload['created_at']

    def test_restore_into_empty_database(self, app, make_order, workdir):
        """Test a restore recreates rows with their ids and timestamps"""
        order = make_order(trial_date='2026-11-02T10:00:00')
        backup_data.backup(str(workdir / 'backup.json'))

        drop_db()
        init_db()
        inserted = backup_data.restore(str(workdir / 'backup.json'))

        assert inserted['orders'] == 1
        assert inserted['order_items'] == 1
        assert inserted['messages'] == 1
        with get_db_session() as session:
            restored = session.query(Order).filter(Order.id == order['id']).one()
            assert restored.order_number == order['order_number']
            assert restored.trial_date.isoformat() == '2026-11-02T10:00:00'
            assert restored.client.name
            assert session.query(OrderItem).count() == 1

    def test_restore_skips_existing_rows(self, app, make_order, workdir):
        """Test restoring over live data inserts nothing twice"""
        make_order()
        backup_data.backup(str(workdir / 'backup.json'))
        inserted = backup_data.restore(str(workdir / 'backup.json'))
        assert sum(inserted.values()) == 0
        with get_db_session() as session:
            assert session.query(Client).count() == 1
            assert session.query(Message).count() == 1

    def test_restore_missing_file(self, app, workdir):
        """Test a missing backup file is reported"""
        with pytest.raises(FileNotFoundError):
            backup_data.restore(str(workdir / 'missing.json'))

    def test_cli_backup(self, app, make_client, workdir, monkeypatch):
        """Test the command line entry point writes the requested file"""
        make_client()
        monkeypatch.setattr(backup_data, 'configure_database', lambda url: None)
        assert backup_data.main(['backup', '--output', str(workdir / 'cli.json')]) == 0
        data = json.loads((workdir / 'cli.json').read_text())
        assert len(data['tables']['clients']) == 1
