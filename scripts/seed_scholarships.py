"""CLI script to load scholarship listings from a JSON file into the DB.
Usage: python scripts/seed_scholarships.py listings.json [--poster EMAIL]

The file must hold a JSON array of objects using the API's camelCase
field names (`scholarshipName`, `universityName`, `applicationFees`, ...).
"""
import sys
import json
import argparse
import pathlib
from typing import Optional
# Ensure the project root is on sys.path so `scholarship_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from pydantic import ValidationError
from sqlmodel import Session
from scholarship_api.database import engine, create_db_and_tables
from scholarship_api import services, schemas


def main(path: pathlib.Path, poster: Optional[str] = None):
    """Validate each listing and insert it, printing a one-line summary per item.

    Invalid items are reported and skipped; the rest are still imported.
    """
    items = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(items, list):
        print(f'{path} must contain a JSON array')
        return
    create_db_and_tables()
    created = 0
    with Session(engine) as session:
        svc = services.ScholarshipService(session)
        for idx, item in enumerate(items):
            try:
                data = schemas.ScholarshipIn.model_validate(item)
            except ValidationError as e:
                print(f'Skipped item {idx}: {e.error_count()} validation error(s)')
                continue
            scholarship = svc.add(data, poster_email=poster)
            created += 1
            print(f'Imported {scholarship.scholarship_name} ({scholarship.id})')
    print(f'Total created scholarships: {created} of {len(items)}')


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('path', type=pathlib.Path, help='JSON file with an array of scholarships')
    parser.add_argument('--poster', help='Email recorded as the poster when an item has none')
    args = parser.parse_args()
    main(args.path, poster=args.poster)
