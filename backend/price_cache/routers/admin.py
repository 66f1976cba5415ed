"""Operator routes that start refresh jobs out-of-band.

Access control for these routes belongs to the deployment (reverse proxy or
network policy).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel

from ..services.container import PriceCacheServices, get_services
from ..services.records import TRIGGER_MANUAL
from ..services.scheduler import MANUAL_JOBS, run_logged

router = APIRouter()


class JobStartedResponse(BaseModel):
    """Acknowledgement that a job was queued."""
    status: str = "started"
    job: str
    trigger: str = TRIGGER_MANUAL


def _start(job_name: str, background_tasks: BackgroundTasks, services: PriceCacheServices) -> JobStartedResponse:
    background_tasks.add_task(run_logged, job_name, MANUAL_JOBS[job_name], services, TRIGGER_MANUAL)
    return JobStartedResponse(job=job_name)


@router.post("/refresh-prices", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_price_refresh(
    background_tasks: BackgroundTasks,
    services: PriceCacheServices = Depends(get_services),
):
    """Start a price refresh."""
    return _start("refresh-prices", background_tasks, services)


@router.post("/refresh-registry", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_registry_refresh(
    background_tasks: BackgroundTasks,
    services: PriceCacheServices = Depends(get_services),
):
    """Start a registry refresh."""
    return _start("refresh-registry", background_tasks, services)


@router.post("/write-snapshot", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_snapshot_write(
    background_tasks: BackgroundTasks,
    services: PriceCacheServices = Depends(get_services),
):
    """Start a daily snapshot write."""
    return _start("write-snapshot", background_tasks, services)
