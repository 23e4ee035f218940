import logging
from typing import Annotated, List, Literal, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from helpers.availability_rules import TimeBlock, validate, validate_week, weekly_load_summary
from helpers.jwt_token import require_professional
from helpers.scheduling_client import SchedulingClient, SchedulingServiceError, get_scheduling_client
from helpers.staged_schedule import (
    TEMPLATES,
    BlockNotFoundError,
    StagedSchedule,
    UnknownTemplateError,
    draft_store,
)
from models.professional_profile import ProfessionalProfile
from models.user import User


logger = logging.getLogger("availability")

availability_router = APIRouter(prefix="/availability")

Professional = Annotated[Tuple[User, ProfessionalProfile], Depends(require_professional)]
Scheduling = Annotated[SchedulingClient, Depends(get_scheduling_client)]


class BlockCreateRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    session_duration: Literal[30, 60] = 60


class BlockUpdateRequest(BaseModel):
    start_time: str
    end_time: str


class ValidateRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    blocks: List[TimeBlock] = []
    exclude_block_id: Optional[str] = None


class SummaryRequest(BaseModel):
    blocks: List[TimeBlock]


def _service_error(e: SchedulingServiceError) -> HTTPException:
    # Collaborator 4xx are the caller's problem, anything else is ours
    status_code = e.status_code if 400 <= e.status_code < 500 else 502
    return HTTPException(status_code=status_code, detail=f"Scheduling service error: {e.detail}")


def _rejected(result) -> HTTPException:
    return HTTPException(status_code=400, detail=result.to_dict())


async def _load_draft(profile: ProfessionalProfile, client: SchedulingClient) -> StagedSchedule:
    # Callers hold draft_store.lock(profile.id)
    draft = draft_store.get(profile.id)
    if draft is not None:
        return draft

    records = await client.fetch_blocks(profile.id)
    try:
        draft = StagedSchedule.from_records(records)
    except (ValidationError, ValueError) as e:
        logger.error(f"Invalid availability returned for profile {profile.id}: {e}")
        raise HTTPException(status_code=502, detail="Scheduling service returned invalid availability")

    issues = validate_week(draft.all_blocks())
    for issue in issues:
        logger.warning(f"Stored availability for profile {profile.id} is inconsistent: {issue.detail}")
    return draft_store.put(profile.id, draft)


def _draft_response(draft: StagedSchedule, detail: str, **extra) -> dict:
    return {
        "success": True,
        "data": draft.to_dict(),
        "detail": detail,
        **extra,
    }


@availability_router.get("/templates")
async def list_templates():
    return {
        "success": True,
        "templates": [
            {
                "name": name,
                "label": template["label"],
                "description": template["description"],
                "days": template["days"],
                "start_time": template["start"],
                "end_time": template["end"],
            }
            for name, template in TEMPLATES.items()
        ],
    }


@availability_router.post("/validate")
async def validate_block(req: ValidateRequest):
    try:
        result = validate(req.day_of_week, req.start_time, req.end_time, req.blocks, req.exclude_block_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "result": result.to_dict()}


@availability_router.post("/summary")
async def summarize_blocks(req: SummaryRequest):
    return {"success": True, "summary": weekly_load_summary(req.blocks).to_dict()}


@availability_router.get("/draft")
async def get_draft(current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            return _draft_response(draft, "Availability fetched successfully")
    except HTTPException:
        raise
    except SchedulingServiceError as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch availability: {str(e)}")


@availability_router.post("/draft/blocks")
async def add_block(req: BlockCreateRequest, current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            result = draft.add_block(req.day_of_week, req.start_time, req.end_time, req.session_duration)
            if not result.accepted:
                raise _rejected(result)
            return _draft_response(draft, "Block added. Remember to save your changes.")
    except HTTPException:
        raise
    except SchedulingServiceError as e:
        raise _service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to add block: {str(e)}")


@availability_router.put("/draft/blocks/{block_id}")
async def edit_block(block_id: str, req: BlockUpdateRequest, current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            result = draft.edit_block(block_id, req.start_time, req.end_time)
            if not result.accepted:
                raise _rejected(result)
            return _draft_response(draft, "Block updated. Remember to save your changes.")
    except HTTPException:
        raise
    except BlockNotFoundError:
        raise HTTPException(status_code=404, detail="Block not found")
    except SchedulingServiceError as e:
        raise _service_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update block: {str(e)}")


@availability_router.delete("/draft/blocks/{block_id}")
async def delete_block(block_id: str, current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            draft.remove_block(block_id)
            return _draft_response(draft, "Block removed. Remember to save your changes.")
    except HTTPException:
        raise
    except BlockNotFoundError:
        raise HTTPException(status_code=404, detail="Block not found")
    except SchedulingServiceError as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to remove block: {str(e)}")


@availability_router.post("/draft/blocks/{block_id}/toggle")
async def toggle_block(block_id: str, current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            block = draft.toggle_active(block_id)
            state = "activated" if block.active else "deactivated"
            return _draft_response(draft, f"Block {state}. Remember to save your changes.")
    except HTTPException:
        raise
    except BlockNotFoundError:
        raise HTTPException(status_code=404, detail="Block not found")
    except SchedulingServiceError as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to toggle block: {str(e)}")


@availability_router.post("/draft/template/{name}")
async def apply_template(name: str, current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft = await _load_draft(profile, client)
            draft.apply_template(name)
            return _draft_response(draft, "Template applied. Remember to save your changes.")
    except HTTPException:
        raise
    except UnknownTemplateError:
        raise HTTPException(status_code=404, detail=f"Template {name!r} not found")
    except SchedulingServiceError as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to apply template: {str(e)}")


@availability_router.post("/draft/reset")
async def reset_draft(current: Professional, client: Scheduling):
    user, profile = current
    try:
        async with draft_store.lock(profile.id):
            draft_store.discard(profile.id)
            draft = await _load_draft(profile, client)
            return _draft_response(draft, "Unsaved changes discarded")
    except HTTPException:
        raise
    except SchedulingServiceError as e:
        raise _service_error(e)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to reset availability: {str(e)}")


@availability_router.post("/draft/save")
async def save_draft(current: Professional, client: Scheduling):
    user, profile = current
    async with draft_store.lock(profile.id):
        draft = draft_store.get(profile.id)
        if draft is None:
            raise HTTPException(status_code=400, detail="There are no staged changes to save")

        issues = validate_week(draft.all_blocks())
        if issues:
            raise HTTPException(status_code=400, detail={
                "message": "The staged availability has conflicts",
                "issues": [{"index": issue.index, "block_id": issue.block.id, "detail": issue.detail} for issue in issues],
            })

        try:
            configured = await client.save_blocks(profile.id, draft.to_payload())
        except SchedulingServiceError as e:
            raise _service_error(e)

        # Saved blocks come back with ids issued by the scheduling service
        draft_store.discard(profile.id)
        try:
            draft = await _load_draft(profile, client)
        except (HTTPException, SchedulingServiceError) as e:
            logger.error(f"Saved availability for profile {profile.id} but could not reload it: {e}")
            return {
                "success": True,
                "configured": configured,
                "data": None,
                "detail": f"Availability updated. {configured} blocks configured.",
            }

    return _draft_response(draft, f"Availability updated. {configured} blocks configured.", configured=configured)
