from fastapi import APIRouter, Depends, Request

from guide_server.services.delivery_service import ArtifactDelivery

router = APIRouter()


def get_delivery(request: Request) -> ArtifactDelivery:
    return request.app.state.delivery


@router.get("/download/{token}")
async def download(token: str, delivery: ArtifactDelivery = Depends(get_delivery)):
    """One-time PDF download. Errors come back as JSON through the app's error handler."""
    return delivery.open(token)
