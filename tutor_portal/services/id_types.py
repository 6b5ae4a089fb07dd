"""Tell a Firestore student id apart from a Google Drive folder id."""

import re

from tutor_portal.services.errors import InvalidDriveFolderIdError, InvalidStudentIdError

FIRESTORE_ID_RE = re.compile(r'^[a-zA-Z0-9]{20}$')
ID_TYPE_FIRESTORE = 'firestore'
ID_TYPE_DRIVE = 'drive'
ID_TYPE_AUTO = 'auto'


def is_firestore_student_id(value):
    return isinstance(value, str) and bool(FIRESTORE_ID_RE.match(value))


def is_drive_folder_id(value):
    return isinstance(value, str) and len(value) > 20


def detect_id_type(value):
    if is_firestore_student_id(value):
        return ID_TYPE_FIRESTORE
    if is_drive_folder_id(value):
        return ID_TYPE_DRIVE
    raise InvalidStudentIdError(value or '', 'unknown')


def validate_firestore_student_id(value):
    if not is_firestore_student_id(value):
        raise InvalidStudentIdError(value or '', ID_TYPE_FIRESTORE)
    return value


def validate_drive_folder_id(value):
    if not is_drive_folder_id(value):
        raise InvalidDriveFolderIdError(value or '')
    return value
