class IntakeError(Exception):
    status_code = 500


class ImageProcessingError(IntakeError):
    """The uploaded bytes could not be decoded or transcoded."""


class ExternalServiceError(IntakeError):
    """A collaborator the pipeline depends on failed."""


class FaceDetectionError(ExternalServiceError):
    pass


class StorageError(ExternalServiceError):
    pass
