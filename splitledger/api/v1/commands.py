"""POST /v1/commands - apply a command to the ledger"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from splitledger.api.dependencies import get_ledger_store, get_request_id
from splitledger.api.v1.schemas import CommandRequest, CommandResponse
from splitledger.domain.exceptions import ValidationError
from splitledger.infrastructure.storage.serialization import parse_command
from splitledger.infrastructure.store import LedgerStore

router = APIRouter()


@router.post("/commands", response_model=CommandResponse)
def apply_command(
    body: CommandRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    store: LedgerStore = Depends(get_ledger_store),
):
    """
    Apply one command to the current snapshot.

    Flow:
    1. Parse the tagged message into a typed command
    2. Apply it to the in-memory snapshot (all or nothing)
    3. Schedule a background save; a failed save does not undo the command
    """
    request_id = get_request_id(request)

    try:
        command = parse_command(body.model_dump())
        store.dispatch(command)
    except ValidationError as e:
        logging.warning(f"Command rejected: {e}", extra={"request_id": request_id, "command_kind": body.kind})
        raise HTTPException(status_code=422, detail=str(e))

    background_tasks.add_task(store.persist)

    return CommandResponse(kind=body.kind, applied=True, sync_status=store.sync_status)
