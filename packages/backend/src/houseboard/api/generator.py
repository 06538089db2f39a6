"""Generator control endpoints — start, stop, status.

Both control calls are idempotent: starting a running generator or
stopping a stopped one succeeds with changed=false.
"""

from fastapi import APIRouter, Depends, HTTPException

from houseboard.api.deps import get_supervisor
from houseboard.errors import ProcessSpawnError
from houseboard.generator.supervisor import GeneratorSupervisor
from houseboard.schemas.leaderboard import (
    GeneratorControlResponse,
    GeneratorStatusRead,
    GeneratorStatusResponse,
)

router = APIRouter()


def _status(supervisor: GeneratorSupervisor) -> GeneratorStatusRead:
    return GeneratorStatusRead.model_validate(supervisor.status().to_dict())


@router.post("/generator/start", response_model=GeneratorControlResponse)
async def start_generator(supervisor: GeneratorSupervisor = Depends(get_supervisor)):
    try:
        started = await supervisor.start()
    except ProcessSpawnError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return GeneratorControlResponse(
        message="Data generator started" if started else "Data generator already running",
        changed=started,
        status=_status(supervisor),
    )


@router.post("/generator/stop", response_model=GeneratorControlResponse)
async def stop_generator(supervisor: GeneratorSupervisor = Depends(get_supervisor)):
    stopped = await supervisor.stop()
    return GeneratorControlResponse(
        message="Data generator stopped" if stopped else "Data generator not running",
        changed=stopped,
        status=_status(supervisor),
    )


@router.get("/generator/status", response_model=GeneratorStatusResponse)
async def generator_status(supervisor: GeneratorSupervisor = Depends(get_supervisor)):
    return GeneratorStatusResponse(status=_status(supervisor))
