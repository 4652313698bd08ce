#!/usr/bin/env python3
"""
Backup and restore script for The Darji database.

Exports every table to a single JSON file and loads such a file back,
inserting in dependency order and skipping rows that already exist.

Usage:
    python backup_data.py backup [--output backup.json]
    python backup_data.py restore --input backup.json
"""

import os
import sys
import json
import logging
import argparse
from datetime import datetime

from dateutil import parser as date_parser
from sqlalchemy import DateTime, select

from database.connection import configure_database, get_db_session, init_db
from database import models
from logging_config import get_logger

logger = get_logger(__name__)

# Parents before children so foreign keys resolve on restore
TABLES = (
    ('users', models.User),
    ('garment_types', models.GarmentType),
    ('clients', models.Client),
    ('orders', models.Order),
    ('order_items', models.OrderItem),
    ('additional_services', models.AdditionalService),
    ('special_requirements', models.SpecialRequirement),
    ('trial_notes', models.TrialNote),
    ('invoices', models.Invoice),
    ('messages', models.Message),
    ('measurement_templates', models.MeasurementTemplate),
    ('message_templates', models.MessageTemplate),
)


def _serialize(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def export_tables(session):
    """Read every table into {table_name: [row, ...]}"""
    data = {}
    for name, model in TABLES:
        table = model.__table__
        rows = session.execute(select(table)).mappings().all()
        data[name] = [{key: _serialize(value) for key, value in row.items()} for row in rows]
        logger.info(f"Exported {len(rows)} rows from {name}")
    return data


def import_tables(session, data):
    """
    Insert rows from a backup mapping; existing ids are skipped.

    Returns:
        {table_name: inserted_count}
    """
    inserted = {}
    for name, model in TABLES:
        table = model.__table__
        date_columns = {c.name for c in table.columns if isinstance(c.type, DateTime)}
        existing = set(session.execute(select(table.c.id)).scalars())
        count = 0

        for row in data.get(name, []):
            if row.get('id') in existing:
                continue
            values = {key: value for key, value in row.items() if key in table.c}
            for column in date_columns:
                if values.get(column):
                    values[column] = date_parser.isoparse(values[column])
            session.execute(table.insert().values(**values))
            count += 1

        inserted[name] = count
        logger.info(f"Restored {count} rows into {name}")
    return inserted


def backup(output_path):
    with get_db_session() as session:
        data = export_tables(session)

    payload = {'created_at': datetime.now().isoformat(), 'tables': data}
    with open(output_path, 'w') as f:
        json.dump(payload, f, indent=2)

    total = sum(len(rows) for rows in data.values())
    logger.info(f"Backup written to {output_path} ({total} rows)")
    return payload


def restore(input_path):
    if not os.path.exists(input_path):
        raise FileNotFoundError(f"Backup file not found: {input_path}")

    with open(input_path, 'r') as f:
        payload = json.load(f)

    init_db()
    with get_db_session() as session:
        inserted = import_tables(session, payload.get('tables', payload))

    logger.info(f"Restore complete: {sum(inserted.values())} rows inserted")
    return inserted


def main(argv=None):
    parser = argparse.ArgumentParser(description='Backup or restore The Darji database')
    subparsers = parser.add_subparsers(dest='command', required=True)

    backup_parser = subparsers.add_parser('backup', help='Export all tables to JSON')
    backup_parser.add_argument('--output', default='backup.json')

    restore_parser = subparsers.add_parser('restore', help='Load a JSON backup')
    restore_parser.add_argument('--input', required=True)

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    from config import Config
    configure_database(os.environ.get('DATABASE_URL') or Config.DATABASE_URL)

    if args.command == 'backup':
        backup(args.output)
    else:
        restore(args.input)
    return 0


if __name__ == '__main__':
    sys.exit(main())
