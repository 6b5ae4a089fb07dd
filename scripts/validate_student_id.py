#!/usr/bin/env python3
"""Check the shape of a student id and resolve it against Firestore and Drive.

Usage:
  python scripts/validate_student_id.py 0FTYzgjgllP6rZZBmXil
  python scripts/validate_student_id.py 1zzYz5TURBj0ieMC7-xvFAzA5gkqoQpPw
"""

import argparse

from tutor_portal import runtime
from tutor_portal.services.errors import AppError
from tutor_portal.services.id_types import detect_id_type
from tutor_portal.services.students_api_service import resolve_student_folder


def describe(student_id, id_type=None):
    detected = detect_id_type(student_id)
    print(f"Student ID: {student_id}")
    print(f"Detected type: {detected}")
    try:
        resolved = resolve_student_folder(runtime, student_id, id_type)
    except AppError as e:
        print(f"INVALID: {e.message}")
        for suggestion in e.suggestions:
            print(f"  - {suggestion}")
        return 1

    print('VALID')
    print(f"  Student name: {resolved['studentName']}")
    print(f"  Drive folder: {resolved['folderId']}")
    print(f"  Metadata key: {resolved['metadataKey']}")
    student = resolved['student'] or {}
    if student:
        print(f"  Subject: {student.get('subject') or 'Not set'}")
        print(f"  Folder confirmed: {bool(student.get('folderConfirmed'))}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description='Validate a Firestore student id or Drive folder id.')
    parser.add_argument('student_id', help='Firestore student id or Drive folder id')
    parser.add_argument('--id-type', choices=['firestore', 'drive', 'auto'], default='auto')
    args = parser.parse_args()
    return describe(args.student_id.strip(), args.id_type)


if __name__ == '__main__':
    raise SystemExit(main())
