"""
Export and import of structured records as JSON and CSV files.

The JSON file holds one entry per contact with its raw contact columns and
data records, so it can be read back into contacts. The CSV file is meant for
viewing in a spreadsheet: one row per record with its kind, type, label and
main value.

Dependencies:
    - json: Standard library for JSON files
    - csv: Standard library for CSV file handling
    - base64: Standard library for binary fields (photos)
    - logging: Standard library for logging
"""
# pylint: disable=logging-fstring-interpolation

import base64
import binascii
import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from contactrows import records as rec
from contactrows.builders import build_raw_contact, build_records
from contactrows.handlers import contact_from_records
from contactrows.model import Contact
from contactrows.records import DataKind, StructuredRecord

logger = logging.getLogger("contactrows")

# Field shown in the CSV value column, per kind
_VALUE_FIELDS = {
    DataKind.STRUCTURED_NAME: rec.DISPLAY_NAME,
    DataKind.NICKNAME: rec.NAME,
    DataKind.PHONE: rec.NUMBER,
    DataKind.EMAIL: rec.ADDRESS,
    DataKind.STRUCTURED_POSTAL: rec.FORMATTED_ADDRESS,
    DataKind.ORGANIZATION: rec.COMPANY,
    DataKind.WEBSITE: rec.URL,
    DataKind.IM: rec.DATA,
    DataKind.SIP_ADDRESS: rec.SIP_ADDRESS,
    DataKind.EVENT: rec.START_DATE,
    DataKind.RELATION: rec.NAME,
    DataKind.NOTE: rec.NOTE,
    DataKind.PHOTO: rec.PHOTO,
    DataKind.GROUP_MEMBERSHIP: rec.GROUP_TITLE,
}

CSV_HEADERS = ['Contact', 'UID', 'Kind', 'Type', 'Label', 'Value', 'Fields']


def record_to_dict(record: StructuredRecord) -> Dict[str, Any]:
    """
    Convert a record to JSON-compatible data. Binary fields become base64.

    :param record: Record to convert
    :return: Dictionary with "kind" and "fields"
    """
    fields = {}
    for name, value in record.fields.items():
        if isinstance(value, (bytes, bytearray)):
            value = base64.b64encode(value).decode('ascii')
        fields[name] = value
    return {'kind': record.kind.value, 'fields': fields}


def record_from_dict(data: Dict[str, Any]) -> StructuredRecord:
    """
    Convert JSON data back into a record.

    :param data: Dictionary with "kind" and "fields"
    :return: Record
    :raises ValueError: If the kind is unknown or binary data is invalid
    """
    kind = DataKind(data['kind'])
    fields = dict(data.get('fields') or {})
    photo = fields.get(rec.PHOTO)
    if kind == DataKind.PHOTO and isinstance(photo, str):
        try:
            fields[rec.PHOTO] = base64.b64decode(photo)
        except binascii.Error as e:
            raise ValueError(f"Invalid photo data: {e}") from e
    return StructuredRecord(kind, fields)


def contact_to_dict(contact: Contact) -> Dict[str, Any]:
    return {
        'raw': build_raw_contact(contact),
        'records': [record_to_dict(r) for r in build_records(contact)],
    }


def contact_from_dict(data: Dict[str, Any]) -> Contact:
    if not isinstance(data, dict):
        raise ValueError(f"Expected a contact object, got {type(data).__name__}")
    records = [record_from_dict(r) for r in data.get('records', [])]
    return contact_from_records(records, data.get('raw'))


def export_records_to_json(contacts: List[Contact], output_path: Path) -> None:
    """
    Write the records of all contacts to a JSON file.

    :param contacts: Contacts to export
    :param output_path: Target file, parent directories are created
    :raises IOError: If the file can't be written
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = [contact_to_dict(contact) for contact in contacts]
    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except IOError as e:
        logger.error(f"Failed to write JSON file {output_path}: {e}")
        raise
    logger.info(f"Exported {len(contacts)} contacts to {output_path}")


def load_records_from_json(input_path: Path) -> List[Contact]:
    """
    Read contacts from a JSON records file.

    :param input_path: JSON file written by export_records_to_json()
    :return: Contacts in file order
    :raises FileNotFoundError: If the file does not exist
    :raises ValueError: If the file content is not a records list
    """
    if not input_path.exists():
        raise FileNotFoundError(f"Records file not found: {input_path}")

    with open(input_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {input_path}: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"Expected a list of contacts in {input_path}")

    contacts = []
    for index, entry in enumerate(data, 1):
        try:
            contacts.append(contact_from_dict(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping contact {index} in {input_path}: {e}")

    logger.info(f"Loaded {len(contacts)} contacts from {input_path}")
    return contacts


def _record_to_csv_row(index: int, uid: str, record: StructuredRecord) -> List[str]:
    value = record.fields.get(_VALUE_FIELDS.get(record.kind, ''), '')
    if isinstance(value, (bytes, bytearray)):
        value = f"<{len(value)} bytes>"

    other_fields = {
        name: field_value for name, field_value in record.fields.items()
        if name not in (rec.TYPE, rec.LABEL, _VALUE_FIELDS.get(record.kind))
        and not isinstance(field_value, (bytes, bytearray))
    }
    return [
        str(index),
        uid or '',
        record.kind.value,
        str(record.fields.get(rec.TYPE, '')),
        record.fields.get(rec.LABEL, '') or '',
        str(value),
        json.dumps(other_fields, ensure_ascii=False) if other_fields else '',
    ]


def export_records_to_csv(contacts: List[Contact], output_path: Path) -> None:
    """
    Write one CSV row per record of each contact.

    :param contacts: Contacts to export
    :param output_path: Target file, parent directories are created
    :raises IOError: If the file can't be written
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    row_count = 0
    try:
        with open(output_path, 'w', newline='', encoding='utf-8') as csvfile:
            writer = csv.writer(csvfile, quoting=csv.QUOTE_MINIMAL)
            writer.writerow(CSV_HEADERS)
            for index, contact in enumerate(contacts, 1):
                for record in build_records(contact):
                    writer.writerow(_record_to_csv_row(index, contact.uid, record))
                    row_count += 1
    except IOError as e:
        logger.error(f"Failed to write CSV file {output_path}: {e}")
        raise

    logger.info(f"Exported {row_count} records of {len(contacts)} contacts to {output_path}")
