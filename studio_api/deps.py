from fastapi import Request

from studio.workflow.runner import JobRunner
from studio.workflow.store import StudioState


def get_studio(request: Request) -> StudioState:
    return request.app.state.studio


def get_runner(request: Request) -> JobRunner:
    return request.app.state.runner
