"""
NoteLens Backend — AI Interaction State Routes
================================================

What:  Exposes the signed-in user's interaction controller state to the UI.
How:   The controller lives in the application's InteractionRegistry, keyed
       by uid; vision and language routes obtain it through get_controller.
"""

import logging

from fastapi import APIRouter, Depends, Request

from notelens.schemas.analysis import InteractionState
from notelens.services.interaction import AIInteractionController, InteractionRegistry
from notelens.session import BackendSession, get_user_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI State"])


def get_interactions(request: Request) -> InteractionRegistry:
    return request.app.state.interactions


def get_controller(
    session: BackendSession = Depends(get_user_session),
    registry: InteractionRegistry = Depends(get_interactions),
) -> AIInteractionController:
    return registry.get(session)


@router.get(
    "/state",
    response_model=InteractionState,
    summary="Current AI interaction state",
    description="loading / error / result of the last AI operation started by this user.",
)
async def get_state(
    controller: AIInteractionController = Depends(get_controller),
) -> InteractionState:
    return controller.state


@router.post(
    "/reset",
    response_model=InteractionState,
    summary="Clear the AI interaction state",
)
async def reset_state(
    controller: AIInteractionController = Depends(get_controller),
) -> InteractionState:
    controller.reset()
    return controller.state
