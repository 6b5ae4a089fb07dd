"""Typed application errors and their JSON shape."""

DOCS_BASE_URL = 'https://firebase.google.com/docs'


class AppError(Exception):
    code = 'UNKNOWN_ERROR'

    def __init__(self, message, code=None, suggestions=None, documentation_url=None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.suggestions = list(suggestions or [])
        self.documentation_url = documentation_url


class InvalidStudentIdError(AppError):
    code = 'INVALID_STUDENT_ID'

    def __init__(self, student_id, id_type='unknown'):
        self.student_id = student_id
        self.id_type = id_type
        if id_type == 'firestore':
            message = f"Invalid Firestore student ID: '{student_id}'"
            suggestions = [
                'Firestore student IDs are exactly 20 alphanumeric characters',
                'Make sure the student has a linked Drive folder',
            ]
        else:
            message = f"Invalid student ID: '{student_id}'"
            suggestions = [
                'Use a 20-character Firestore student ID or a Google Drive folder ID',
                'Pass idType=firestore or idType=drive to skip auto-detection',
            ]
        super().__init__(message, suggestions=suggestions)


class InvalidDriveFolderIdError(AppError):
    code = 'INVALID_DRIVE_FOLDER_ID'

    def __init__(self, folder_id):
        self.folder_id = folder_id
        super().__init__(
            f"Invalid Google Drive folder ID: '{folder_id}'",
            suggestions=['Google Drive folder IDs are longer than 20 characters'],
            documentation_url='https://developers.google.com/drive/api/guides/about-files',
        )


class StudentNotFoundError(AppError):
    code = 'STUDENT_NOT_FOUND'

    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(
            f"Student {student_id} not found",
            suggestions=['Check the student id, or link the Drive folder to a student first'],
        )


class AuthenticationError(AppError):
    code = 'AUTHENTICATION_ERROR'

    def __init__(self, message='Authentication failed'):
        super().__init__(message, suggestions=['Sign in again and retry'])


class FirebaseCredentialsError(AppError):
    code = 'FIREBASE_CREDENTIALS_ERROR'

    def __init__(self, message='Firebase credentials are missing or invalid'):
        super().__init__(
            message,
            suggestions=[
                'Set FIREBASE_CREDENTIALS to the service-account JSON',
                'Or place firebase-credentials.json in the working directory',
                'Check that the Firebase project id is correct',
            ],
            documentation_url=f"{DOCS_BASE_URL}/admin/setup",
        )


class GoogleOAuthError(AppError):
    code = 'GOOGLE_OAUTH_ERROR'

    def __init__(self, message='Google OAuth credentials are invalid or expired'):
        super().__init__(
            message,
            suggestions=[
                'Regenerate GOOGLE_REFRESH_TOKEN for the Drive account',
                'Or configure GOOGLE_SERVICE_ACCOUNT_JSON',
            ],
            documentation_url='https://developers.google.com/identity/protocols/oauth2',
        )


def create_error_response(error):
    return {
        'success': False,
        'error': error.code,
        'message': error.message,
        'suggestions': error.suggestions,
        'documentationUrl': error.documentation_url,
    }


def handle_unknown_error(error):
    if isinstance(error, AppError):
        return error
    message = str(error or '')
    if 'invalid_grant' in message:
        return GoogleOAuthError(f"Google OAuth token rejected: {message}")
    if 'Could not load the default credentials' in message:
        return FirebaseCredentialsError(message)
    if 'Project not found' in message:
        return FirebaseCredentialsError(message)
    return AppError(message or 'Unknown error')
