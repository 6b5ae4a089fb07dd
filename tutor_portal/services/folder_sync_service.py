"""Links Drive student folders to Firestore students by name similarity."""

import re

from tutor_portal.repositories import folders_repo, students_repo
from tutor_portal.services.time_utils import now_iso

MATCH_THRESHOLD = 0.6

_PREFIX_RE = re.compile(r'^(leerling|student|folder|map)\s*', re.IGNORECASE)
_SUFFIX_RE = re.compile(r'\s*(folder|map|leerling|student)$', re.IGNORECASE)
_PUNCT_RE = re.compile(r'[^\w\s]')
_SPACE_RE = re.compile(r'\s+')


def normalize_folder_name(name):
    text = str(name or '').lower().strip()
    text = _PREFIX_RE.sub('', text)
    text = _SUFFIX_RE.sub('', text)
    text = _PUNCT_RE.sub(' ', text)
    return _SPACE_RE.sub(' ', text).strip()


def match_score(folder_name, student_name):
    a = normalize_folder_name(folder_name)
    b = normalize_folder_name(student_name)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))
    return 0.0


def find_matching_student(folder_name, candidates):
    best = None
    best_score = 0.0
    for student in candidates:
        score = match_score(folder_name, student.get('displayName', ''))
        if score > MATCH_THRESHOLD and score > best_score:
            best = student
            best_score = score
    return best, best_score


def link_folder(db, student_id, folder, *, confirmed=False):
    stamp = now_iso()
    updates = {
        'driveFolderId': folder['id'],
        'driveFolderName': folder.get('name', ''),
        'folderConfirmed': bool(confirmed),
        'folderLinkedAt': stamp,
        'updatedAt': stamp,
    }
    if folder.get('subject'):
        updates['subject'] = folder['subject']
    if confirmed:
        updates['folderConfirmedAt'] = stamp
    students_repo.update_doc(db, student_id, updates)
    folders_repo.delete(db, folder['id'])
    return updates


def sync_drive_folders(db, drive_service, logger=None):
    """Auto-link unclaimed Drive folders; park the rest in ``unlinkedFolders``."""
    drive_folders = drive_service.get_all_students()
    students = students_repo.list_students(db)
    linked_ids = {student.get('driveFolderId') for student in students if student.get('driveFolderId')}
    candidates = [student for student in students if not student.get('driveFolderId')]

    linked = 0
    unlinked = 0
    matches = []
    for folder in drive_folders:
        if folder['id'] in linked_ids:
            continue
        student, score = find_matching_student(folder.get('name', ''), candidates)
        if student is not None:
            link_folder(db, student['id'], folder)
            candidates = [candidate for candidate in candidates if candidate['id'] != student['id']]
            linked_ids.add(folder['id'])
            linked += 1
            matches.append({
                'folderId': folder['id'],
                'folderName': folder.get('name', ''),
                'studentId': student['id'],
                'studentName': student.get('displayName', ''),
                'score': round(score, 3),
            })
            if logger is not None:
                logger.info(f"Auto-linked folder {folder.get('name')} to student {student.get('displayName')} (unconfirmed)")
            continue

        folders_repo.upsert(db, folder['id'], {
            'folderName': folder.get('name', ''),
            'subject': folder.get('subject', ''),
        }, created_at=now_iso())
        unlinked += 1

    return {
        'success': True,
        'linked': linked,
        'unlinked': unlinked,
        'total': len(drive_folders),
        'matches': matches,
    }
