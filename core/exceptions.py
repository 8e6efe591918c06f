class AppError(Exception):
    """Error carrying the HTTP status the API layers should answer with."""

    def __init__(self, message, status_code=500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProjectNotFoundError(AppError):
    def __init__(self, project_id):
        super().__init__(f"Project not found: {project_id}", status_code=404)
        self.project_id = project_id


class StorageError(AppError):
    def __init__(self, message):
        super().__init__(message, status_code=503)


class UnsupportedSystemTypeError(ValueError):
    def __init__(self, system_type):
        super().__init__(f"Unsupported system type: {system_type}")
        self.system_type = system_type
