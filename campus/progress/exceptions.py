"""Progress tracking errors.

Each error carries a machine-readable ``code``; ``dependencies`` maps codes
to HTTP statuses.
"""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserNotFoundError(ProgressError):
    """User does not exist."""

    def __init__(self, message: str = "Usuario no encontrado"):
        super().__init__(message, "user_not_found")


class CourseNotFoundError(ProgressError):
    """Course does not exist."""

    def __init__(self, message: str = "Curso no encontrado"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(ProgressError):
    """Module does not exist."""

    def __init__(self, message: str = "Modulo no encontrado"):
        super().__init__(message, "module_not_found")


class ContentNotFoundError(ProgressError):
    """Content identifier does not resolve inside the module."""

    def __init__(self, message: str = "Contenido no encontrado en el modulo"):
        super().__init__(message, "content_not_found")


class CourseAccessDeniedError(ProgressError):
    """User is not entitled to the course."""

    def __init__(self, message: str = "El usuario no tiene acceso a este curso"):
        super().__init__(message, "course_access_denied")


class ModuleCourseMismatchError(ProgressError):
    """Module belongs to another course."""

    def __init__(self, message: str = "El modulo no pertenece a este curso"):
        super().__init__(message, "module_course_mismatch")
