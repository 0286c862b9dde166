from fastapi import APIRouter, Depends
from splarve.core.authority import RoleAuthority
from splarve.core.dependencies import get_authority, get_company_store, get_current_user_id, get_optional_user
from splarve.core.results import unwrap
from splarve.database.company_store import CompanyStore
from splarve.modules.job_posts.schemas import JobPostCreate, JobPostResponse, JobPostUpdate
from splarve.modules.job_posts.service import JobPostService
from typing import Dict, List, Optional

router = APIRouter(prefix="/companies", tags=["job-posts"])


def get_job_post_service(
    store: CompanyStore = Depends(get_company_store),
    authority: RoleAuthority = Depends(get_authority)
) -> JobPostService:
    return JobPostService(store, authority)


def _user_id(user_data: Optional[Dict]) -> Optional[str]:
    return user_data["id"] if user_data else None


@router.get("/lookup/{handle}/job-posts", response_model=List[JobPostResponse])
async def list_job_posts_by_handle(
    handle: str,
    published: Optional[bool] = None,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: JobPostService = Depends(get_job_post_service)
):
    """Job posts of the company behind a public handle"""
    return unwrap(service.list_by_handle(handle, _user_id(user_data), published))


@router.get("/{company_id}/job-posts", response_model=List[JobPostResponse])
async def list_job_posts(
    company_id: str,
    published: Optional[bool] = None,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: JobPostService = Depends(get_job_post_service)
):
    """List job posts, newest first"""
    return unwrap(service.list_job_posts(company_id, _user_id(user_data), published))


@router.post("/{company_id}/job-posts", response_model=JobPostResponse, status_code=201)
async def create_job_post(
    company_id: str,
    job_data: JobPostCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: JobPostService = Depends(get_job_post_service)
):
    return unwrap(service.create_job_post(company_id, job_data, user_data["id"]))


@router.get("/{company_id}/job-posts/{job_post_id}", response_model=JobPostResponse)
async def get_job_post(
    company_id: str,
    job_post_id: str,
    user_data: Optional[Dict] = Depends(get_optional_user),
    service: JobPostService = Depends(get_job_post_service)
):
    return unwrap(service.get_job_post(company_id, job_post_id, _user_id(user_data)))


@router.put("/{company_id}/job-posts/{job_post_id}", response_model=JobPostResponse)
async def update_job_post(
    company_id: str,
    job_post_id: str,
    job_data: JobPostUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: JobPostService = Depends(get_job_post_service)
):
    """Edit a job post: any post with manage_all_job_posts, your own with manage_own_job_posts"""
    return unwrap(service.update_job_post(company_id, job_post_id, job_data, user_data["id"]))


@router.delete("/{company_id}/job-posts/{job_post_id}")
async def delete_job_post(
    company_id: str,
    job_post_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: JobPostService = Depends(get_job_post_service)
):
    result = service.delete_job_post(company_id, job_post_id, user_data["id"])
    unwrap(result)
    return {"success": True, "message": result.message}
