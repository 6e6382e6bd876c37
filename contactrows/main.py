"""
Command-line interface for converting between vCard files and record files.

The conversion direction follows the file names: a .vcf input is converted
into a JSON records file, a .json input is converted into a .vcf file.

Dependencies:
    - argparse: Standard library for command-line argument parsing
    - pathlib: Standard library for path handling
    - contactrows.codec: vCard reading and writing
    - contactrows.exporter: Records JSON/CSV files
    - contactrows.phone_normalizer: Optional E.164 normalization
    - contactrows.logger: Logging configuration
"""
# pylint: disable=logging-fstring-interpolation

import argparse
import sys
from logging import Logger
from pathlib import Path
from typing import Dict, List, Optional

from contactrows.codec import (
    VCARD_3,
    VCARD_4,
    CodecConfig,
    VCardCodec,
    read_vcard_file,
    write_vcard_file,
)
from contactrows.exporter import (
    contact_to_dict,
    export_records_to_csv,
    export_records_to_json,
    load_records_from_json,
)
from contactrows.logger import log_conversion_summary, setup_logger
from contactrows.model import Contact
from contactrows.phone_normalizer import (
    get_default_region,
    normalize_contacts_phones,
)

VCARD_TO_RECORDS = "vcard-to-records"
RECORDS_TO_VCARD = "records-to-vcard"

_VCARD_SUFFIXES = {'.vcf', '.vcard'}
_RECORDS_SUFFIXES = {'.json'}


def _detect_direction(input_path: Path, output_path: Path) -> str:
    """
    Determine the conversion direction from the file suffixes.

    :param input_path: Input file
    :param output_path: Output file
    :return: VCARD_TO_RECORDS or RECORDS_TO_VCARD
    :raises ValueError: If the suffixes don't select a direction
    """
    input_suffix = input_path.suffix.lower()
    output_suffix = output_path.suffix.lower()
    if input_suffix in _VCARD_SUFFIXES and output_suffix in _RECORDS_SUFFIXES:
        return VCARD_TO_RECORDS
    if input_suffix in _RECORDS_SUFFIXES and output_suffix in _VCARD_SUFFIXES:
        return RECORDS_TO_VCARD
    raise ValueError(
        f"Can't convert {input_path.name} to {output_path.name}: "
        f"expected .vcf -> .json or .json -> .vcf"
    )


def _create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    :return: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description='Convert contacts between vCard files and structured records',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--input', '-i',
        type=str,
        required=True,
        help='Input file: vCard (.vcf) or records (.json)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        required=True,
        help='Output file: records (.json) or vCard (.vcf)'
    )

    parser.add_argument(
        '--vcard-version',
        type=str,
        default=VCARD_3,
        choices=[VCARD_3, VCARD_4],
        help=f'vCard version to write (default: {VCARD_3})'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Log file path (default: logs/conversion_<timestamp>.log)'
    )

    parser.add_argument(
        '--normalize-phones',
        action='store_true',
        default=False,
        help='Rewrite phone numbers in E.164 format'
    )

    parser.add_argument(
        '--phone-region',
        type=str,
        default=None,
        metavar='CODE',
        help='2-letter country code for phone numbers in national format '
             '(e.g., US, GB, NL). Defaults to the system locale.'
    )

    parser.add_argument(
        '--csv',
        '--export-csv',
        type=str,
        dest='csv_output',
        help='Also export the records to a CSV file (provide path)'
    )

    return parser


def _handle_phone_normalization(
    contacts: List[Contact],
    args: argparse.Namespace,
    logger: Logger
) -> Optional[Dict[str, int]]:
    """
    Normalize phone numbers if requested.

    :param contacts: Contacts to update in place
    :param args: Parsed command-line arguments
    :param logger: Logger instance
    :return: Normalization statistics, or None if disabled
    """
    if not args.normalize_phones:
        return None

    region = get_default_region(args.phone_region)
    logger.info(f"Normalizing phone numbers to E.164 format (region: {region})...")
    return normalize_contacts_phones(contacts, default_region=region)


def _handle_csv_export(
    csv_output: Optional[str],
    contacts: List[Contact],
    logger: Logger
) -> None:
    if not csv_output:
        return

    csv_path = Path(csv_output)
    logger.info(f"Exporting records to CSV: {csv_path}")
    export_records_to_csv(contacts, csv_path)


def main(argv: Optional[List[str]] = None) -> None:
    """Main application entry point."""
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    logger = setup_logger(log_level=args.log_level, log_file=log_file)

    try:
        input_path = Path(args.input)
        output_path = Path(args.output)
        direction = _detect_direction(input_path, output_path)
        codec = VCardCodec(CodecConfig(version=args.vcard_version))

        logger.info(f"Reading contacts from {input_path}")
        if direction == VCARD_TO_RECORDS:
            contacts = read_vcard_file(input_path, codec)
        else:
            contacts = load_records_from_json(input_path)

        if not contacts:
            logger.error("No contacts found in input file")
            sys.exit(1)

        phone_stats = _handle_phone_normalization(contacts, args, logger)

        logger.info(f"Writing {len(contacts)} contacts to {output_path}")
        if direction == VCARD_TO_RECORDS:
            export_records_to_json(contacts, output_path)
        else:
            write_vcard_file(contacts, output_path, codec)

        _handle_csv_export(args.csv_output, contacts, logger)

        stats = {
            'direction': direction,
            'contacts': len(contacts),
            'records': sum(
                len(contact_to_dict(contact)['records']) for contact in contacts
            ),
        }
        if phone_stats:
            stats.update(phone_stats)
        log_conversion_summary(logger, stats)

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)
    except IOError as e:
        logger.error(f"Could not write output: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
