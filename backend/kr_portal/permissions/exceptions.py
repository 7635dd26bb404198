from fastapi import HTTPException, status


class PermissionDenied(HTTPException):
    def __init__(self, feature: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Missing capability: {feature}",
        )
