from typing import List

from fastapi import HTTPException


class ValidationError(HTTPException):
    def __init__(self, errors: List[dict] | None = None, message: str = "Validasi gagal."):
        super().__init__(status_code=400, detail=message)
        self.errors = errors or []

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}], message=message)


class AuthenticationError(HTTPException):
    def __init__(self, message: str = "Akses ditolak. Token tidak valid."):
        super().__init__(status_code=401, detail=message)


class AuthorizationError(HTTPException):
    def __init__(self, message: str = "Anda tidak memiliki akses ke resource ini."):
        super().__init__(status_code=403, detail=message)


class NotFoundError(HTTPException):
    def __init__(self, message: str = "Data tidak ditemukan."):
        super().__init__(status_code=404, detail=message)


class UnexpectedError(HTTPException):
    def __init__(self, error: str | None = None):
        super().__init__(status_code=500, detail="Terjadi kesalahan pada server.")
        self.error = error
