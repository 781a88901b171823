# src/circle_hub/api/v1/endpoints/submissions.py
"""Submission form and admin review endpoints."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status

from circle_hub.schemas.submission import (
    ReviewRequest,
    ReviewResponse,
    Submission,
    SubmissionCreate,
    SubmissionStatus,
)
from circle_hub.services.errors import RemoteStoreError, SubmissionNotFound

from ..dependencies import AdminDep, OrchestratorDep

router = APIRouter(prefix="/submissions", tags=["submissions"])


def _remote_unavailable(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Submission store unavailable: {exc}",
    )


@router.post("/", response_model=Submission, status_code=status.HTTP_201_CREATED)
async def create_submission(
    payload: SubmissionCreate,
    orchestrator: OrchestratorDep,
) -> Submission:
    """Accept a community from the public submission form."""
    try:
        return await orchestrator.create_submission(payload)
    except (RemoteStoreError, TimeoutError) as exc:
        raise _remote_unavailable(exc) from exc


@router.get("/", response_model=list[Submission])
async def list_submissions(
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
    status_filter: Annotated[SubmissionStatus | None, Query(alias="status")] = None,
) -> list[Submission]:
    """Return the submission board, newest first.

    When the store cannot be read the last known board is returned.
    """
    await orchestrator.board.fetch()
    return orchestrator.board.submissions(status_filter)


@router.get("/{submission_id}", response_model=Submission)
async def get_submission(
    submission_id: str,
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
) -> Submission:
    try:
        submission = await asyncio.wait_for(
            orchestrator.store.get(submission_id), orchestrator.timeout_seconds
        )
    except (RemoteStoreError, TimeoutError) as exc:
        raise _remote_unavailable(exc) from exc
    if submission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found",
        )
    return submission


@router.post("/{submission_id}/review", response_model=ReviewResponse)
async def review_submission(
    submission_id: str,
    payload: ReviewRequest,
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
) -> ReviewResponse:
    """Approve or reject a submission.

    An approval is always applied locally; ``remote_confirmed`` tells whether
    the submission store recorded it too.
    """
    try:
        outcome = await orchestrator.review(submission_id, payload.status, payload.notes)
    except SubmissionNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found",
        ) from exc
    except RemoteStoreError as exc:
        raise _remote_unavailable(exc) from exc

    return ReviewResponse(
        submission=outcome.submission,
        community=outcome.community,
        remote_confirmed=outcome.remote_confirmed,
        remote_error=outcome.remote_error,
    )


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: str,
    _admin: AdminDep,
    orchestrator: OrchestratorDep,
) -> Response:
    """Permanently delete a submission."""
    try:
        await orchestrator.delete(submission_id)
    except SubmissionNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Submission not found",
        ) from exc
    except (RemoteStoreError, TimeoutError) as exc:
        raise _remote_unavailable(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
