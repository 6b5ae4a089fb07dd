"""Google Drive access for the per-student lesson folders.

Folder layout on Drive::

    Notability/Priveles/<subject>/<student>/*.pdf

Listings are kept in a small in-process TTL cache because the admin pages and
the student portal hit the same folders repeatedly.
"""

import io
import json
import logging
import os
import re
import threading
import time
from datetime import datetime, timezone

from google.oauth2 import service_account
from google.oauth2.credentials import Credentials as OAuthCredentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from tutor_portal.services.errors import GoogleOAuthError

DRIVE_SCOPES = ['https://www.googleapis.com/auth/drive.readonly']
FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
PDF_MIME_TYPE = 'application/pdf'
GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'
METADATA_CACHE_DURATION_SECONDS = 12 * 60 * 60
PRELOAD_BATCH_SIZE = 5

CACHE_KEY_STUDENTS = 'cached_students'
CACHE_KEY_FILES = 'cached_files_'
CACHE_KEY_METADATA = 'cached_metadata'

_EXTENSION_RE = re.compile(r'\.(pdf|doc|docx|txt)$', re.IGNORECASE)
_PREFIX_RE = re.compile(r'^(Privéles|Prive|Note|Les|Lesson|Lesmateriaal|Materiaal)\s*', re.IGNORECASE)
_VERSION_SUFFIX_RE = re.compile(r'\s*\(\d+\)$')
_TIME_SUFFIX_RE = re.compile(r'\s+\d{1,2}_\d{2}_\d{2}$')
_ISO_DATE_RE = re.compile(r'(\d{4})-(\d{2})-(\d{2})')
_LEADING_ISO_DATE_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})')
_WRITTEN_DATE_RE = re.compile(r'(\d{1,2})\s+(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+(\d{4})', re.IGNORECASE)
_SEPARATED_DATE_RE = re.compile(r'(\d{4})[_-](\d{2})[_-](\d{2})')
_MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}


def build_drive_credentials():
    """Service-account credentials when configured, else the teacher's OAuth refresh token."""
    service_account_raw = (os.getenv('GOOGLE_SERVICE_ACCOUNT_JSON', '') or '').strip()
    if service_account_raw:
        info = json.loads(service_account_raw)
        return service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)

    refresh_token = (os.getenv('GOOGLE_REFRESH_TOKEN', '') or '').strip()
    client_id = (os.getenv('GOOGLE_CLIENT_ID', '') or '').strip()
    client_secret = (os.getenv('GOOGLE_CLIENT_SECRET', '') or '').strip()
    if refresh_token and client_id and client_secret:
        return OAuthCredentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=DRIVE_SCOPES,
        )
    raise GoogleOAuthError('Google Drive credentials are not configured')


def view_url(file_id):
    return f"https://drive.google.com/file/d/{file_id}/view"


def folder_url(folder_id):
    return f"https://drive.google.com/drive/folders/{folder_id}"


def clean_file_name(file_name):
    """Turn a raw Notability export name into a readable lesson title."""
    without_ext = _EXTENSION_RE.sub('', file_name or '')
    clean = _PREFIX_RE.sub('', without_ext)
    clean = _VERSION_SUFFIX_RE.sub('', clean)
    clean = _TIME_SUFFIX_RE.sub('', clean)
    clean = _ISO_DATE_RE.sub(r'\3-\2-\1', clean, count=1)
    clean = re.sub(r'\b\w', lambda match: match.group(0).upper(), clean)
    clean = re.sub(r'\s+', ' ', clean).strip()
    if len(clean) < 3:
        clean = without_ext
    return clean or file_name


def extract_date_from_filename(file_name):
    name = file_name or ''
    match = _LEADING_ISO_DATE_RE.match(name)
    if match:
        try:
            return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), tzinfo=timezone.utc)
        except ValueError:
            return None

    match = _WRITTEN_DATE_RE.search(name)
    if match:
        month = _MONTHS.get(match.group(2).lower())
        try:
            return datetime(int(match.group(3)), month, int(match.group(1)), tzinfo=timezone.utc)
        except (TypeError, ValueError):
            return None

    match = _SEPARATED_DATE_RE.search(name)
    if match:
        try:
            return datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)), tzinfo=timezone.utc)
        except ValueError:
            return None
    return None


def _parse_modified_time(value):
    raw = str(value or '').strip()
    if not raw:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        return datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)


def file_sort_key(entry):
    name_date = extract_date_from_filename(entry.get('name', ''))
    return name_date or _parse_modified_time(entry.get('modifiedTime'))


def sort_files_newest_first(entries):
    return sorted(entries, key=file_sort_key, reverse=True)


def build_file_entry(raw_file):
    file_id = raw_file.get('id', '')
    name = raw_file.get('name', '')
    try:
        size = int(raw_file.get('size', 0) or 0)
    except (TypeError, ValueError):
        size = 0
    return {
        'id': file_id,
        'name': name,
        'title': clean_file_name(name),
        'url': view_url(file_id),
        'viewUrl': f"{view_url(file_id)}?usp=sharing",
        'downloadUrl': f"https://drive.google.com/uc?export=download&id={file_id}",
        'thumbnailUrl': f"https://drive.google.com/thumbnail?id={file_id}&sz=w400-h400",
        'modifiedTime': raw_file.get('modifiedTime', ''),
        'size': size,
    }


def _escape_query_value(value):
    return str(value or '').replace('\\', '\\\\').replace("'", "\\'")


class DriveService:
    def __init__(self, credentials_factory=build_drive_credentials, *, root_folder_id='', notability_folder_id='',
                 cache_duration_hours=12, logger=None):
        self._credentials_factory = credentials_factory
        self._root_folder_id = (root_folder_id or '').strip()
        self._notability_folder_id = (notability_folder_id or '').strip()
        self.cache_duration_seconds = max(1, int(cache_duration_hours)) * 3600
        self.logger = logger or logging.getLogger('tutor_portal')
        self._drive = None
        self._cache = {}
        self._cache_lock = threading.Lock()

    @classmethod
    def from_env(cls, cache_duration_hours=12, logger=None):
        return cls(
            root_folder_id=os.getenv('PRIVELES_FOLDER_ID', ''),
            notability_folder_id=os.getenv('NOTABILITY_FOLDER_ID', ''),
            cache_duration_hours=cache_duration_hours,
            logger=logger,
        )

    # --- cache ---

    def _get_cache(self, key, max_age_seconds=None):
        max_age = self.cache_duration_seconds if max_age_seconds is None else max_age_seconds
        with self._cache_lock:
            entry = self._cache.get(key)
            if not entry:
                return None
            if time.time() - entry['timestamp'] > max_age:
                self._cache.pop(key, None)
                return None
            return entry['data']

    def _set_cache(self, key, data):
        with self._cache_lock:
            self._cache[key] = {'data': data, 'timestamp': time.time()}

    def clear_cache(self):
        with self._cache_lock:
            cleared = len(self._cache)
            self._cache.clear()
        self.logger.info(f"Drive cache cleared ({cleared} entries)")
        return cleared

    # --- low level ---

    def _client(self):
        if self._drive is None:
            credentials = self._credentials_factory()
            self._drive = build('drive', 'v3', credentials=credentials, cache_discovery=False)
        return self._drive

    def _list(self, query, fields='nextPageToken, files(id, name, mimeType, modifiedTime, size)', order_by=None):
        files = []
        page_token = None
        while True:
            params = {
                'q': query,
                'fields': fields,
                'pageSize': 1000,
                'supportsAllDrives': True,
                'includeItemsFromAllDrives': True,
            }
            if order_by:
                params['orderBy'] = order_by
            if page_token:
                params['pageToken'] = page_token
            response = self._client().files().list(**params).execute()
            files.extend(response.get('files', []))
            page_token = response.get('nextPageToken')
            if not page_token:
                return files

    def _list_subfolders(self, parent_id):
        query = f"'{_escape_query_value(parent_id)}' in parents and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        return self._list(query, fields='nextPageToken, files(id, name)', order_by='name')

    def _find_folder(self, name, parent_id=None):
        query = f"name = '{_escape_query_value(name)}' and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        if parent_id:
            query += f" and '{_escape_query_value(parent_id)}' in parents"
        folders = self._list(query, fields='nextPageToken, files(id, name)')
        return folders[0]['id'] if folders else ''

    def get_root_folder_id(self):
        if self._root_folder_id:
            return self._root_folder_id
        notability_id = self._notability_folder_id or self._find_folder('Notability')
        if not notability_id:
            raise RuntimeError('Notability folder not found on Google Drive')
        priveles_id = self._find_folder('Priveles', parent_id=notability_id)
        if not priveles_id:
            raise RuntimeError('Priveles folder not found inside Notability')
        self._root_folder_id = priveles_id
        return priveles_id

    # --- students ---

    def get_all_students(self):
        cached = self._get_cache(CACHE_KEY_STUDENTS)
        if cached is not None:
            return cached

        root_id = self.get_root_folder_id()
        students = []
        for subject_folder in self._list_subfolders(root_id):
            for student_folder in self._list_subfolders(subject_folder['id']):
                students.append({
                    'id': student_folder['id'],
                    'name': student_folder.get('name', ''),
                    'subject': subject_folder.get('name', ''),
                    'url': folder_url(student_folder['id']),
                })
        students.sort(key=lambda student: student['name'].lower())
        self._set_cache(CACHE_KEY_STUDENTS, students)
        self.logger.info(f"Loaded {len(students)} student folders from Drive")
        return students

    def find_student_folders(self, needle):
        needle = str(needle or '').strip().lower()
        if not needle:
            return []
        return [student for student in self.get_all_students() if needle in student['name'].lower()]

    def get_folder_name(self, folder_id):
        for student in self.get_all_students():
            if student['id'] == folder_id:
                return student['name']
        return ''

    # --- files ---

    def list_files_in_folder(self, folder_id):
        cache_key = CACHE_KEY_FILES + folder_id
        cached = self._get_cache(cache_key)
        if cached is not None:
            return cached

        query = f"'{_escape_query_value(folder_id)}' in parents and mimeType = '{PDF_MIME_TYPE}' and trashed = false"
        raw_files = self._list(query, order_by='modifiedTime desc')
        files = sort_files_newest_first([build_file_entry(raw) for raw in raw_files])
        self._set_cache(cache_key, files)
        return files

    def get_student_overview(self, folder_id):
        try:
            files = self.list_files_in_folder(folder_id)
        except Exception as e:
            self.logger.error(f"Error loading overview for folder {folder_id}: {e}")
            return {'fileCount': 0, 'lastActivity': None, 'lastActivityDate': 'Fout bij laden'}
        if not files:
            return {'fileCount': 0, 'lastActivity': None, 'lastActivityDate': 'Geen bestanden'}
        latest = files[0]
        latest_date = file_sort_key(latest)
        return {
            'fileCount': len(files),
            'lastActivity': latest.get('modifiedTime') or None,
            'lastActivityDate': latest_date.strftime('%d-%m-%Y') if latest_date.year > 1 else 'Onbekend',
        }

    def get_file_info(self, file_id):
        """Return ``{id, name, mimeType, size}`` or None when Drive has no such file."""
        try:
            return self._client().files().get(
                fileId=file_id,
                fields='id, name, mimeType, size',
                supportsAllDrives=True,
            ).execute()
        except HttpError as e:
            if getattr(e, 'status_code', None) == 404 or getattr(getattr(e, 'resp', None), 'status', None) == 404:
                return None
            raise

    def download_file(self, file_id):
        request = self._client().files().get_media(fileId=file_id, supportsAllDrives=True)
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request)
        done = False
        while not done:
            _status, done = downloader.next_chunk()
        return buffer.getvalue()

    def test_drive_access(self):
        try:
            root_id = self.get_root_folder_id()
            folders = self._list_subfolders(root_id)
            return {
                'success': True,
                'message': f"Connected to Google Drive, found {len(folders)} subject folders",
                'folderCount': len(folders),
            }
        except Exception as e:
            self.logger.error(f"Drive access test failed: {e}")
            return {'success': False, 'message': f"Failed to connect to Google Drive: {e}"}

    # --- metadata preload ---

    def preload_metadata(self, analyze_document, sleep_fn=time.sleep):
        students = self.get_all_students()
        if not students:
            return {'success': False, 'message': 'No students found for metadata preload'}

        results = []
        for start in range(0, len(students), PRELOAD_BATCH_SIZE):
            batch = students[start:start + PRELOAD_BATCH_SIZE]
            for student in batch:
                try:
                    files = self.list_files_in_folder(student['id'])
                    enriched = []
                    for file_entry in files:
                        analysis = analyze_document(file_entry['name'], file_id=file_entry['id'])
                        enriched.append({**file_entry, **analysis})
                    results.append({
                        'studentId': student['id'],
                        'studentName': student['name'],
                        'subject': student['subject'],
                        'fileCount': len(enriched),
                        'files': enriched,
                    })
                except Exception as e:
                    self.logger.error(f"Error preloading metadata for {student['name']}: {e}")
                    results.append({
                        'studentId': student['id'],
                        'studentName': student['name'],
                        'subject': student['subject'],
                        'fileCount': 0,
                        'error': str(e),
                    })
            if start + PRELOAD_BATCH_SIZE < len(students):
                sleep_fn(1)

        metadata = {
            'students': students,
            'metadata': results,
            'totalStudents': len(students),
            'totalFiles': sum(result['fileCount'] for result in results),
            'lastUpdated': datetime.now(timezone.utc).isoformat(),
        }
        self._set_cache(CACHE_KEY_METADATA, metadata)
        message = f"Metadata preloaded successfully: {metadata['totalStudents']} students, {metadata['totalFiles']} files"
        self.logger.info(message)
        return {'success': True, 'message': message, 'data': metadata}

    def get_cached_metadata(self):
        return self._get_cache(CACHE_KEY_METADATA, max_age_seconds=METADATA_CACHE_DURATION_SECONDS)

    def is_metadata_cache_valid(self):
        return self.get_cached_metadata() is not None
