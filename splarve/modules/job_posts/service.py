import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from splarve.core.authority import RoleAuthority
from splarve.core.results import ErrorKind, OperationResult
from splarve.database.company_store import CompanyStore
from splarve.modules.job_posts.schemas import JobPostCreate, JobPostUpdate

logger = logging.getLogger(__name__)


class JobPostService:
    def __init__(
        self,
        store: CompanyStore,
        authority: RoleAuthority,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.store = store
        self.authority = authority
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _is_member(self, company_id: str, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.store.get_membership(company_id, user_id) is not None

    def list_job_posts(
        self, company_id: str, user_id: Optional[str] = None, published: Optional[bool] = None
    ) -> OperationResult:
        """Members see drafts too; everyone else only published posts"""
        if self.store.get_company(company_id) is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Company not found")
        if not self._is_member(company_id, user_id):
            if published is False:
                return OperationResult.ok(data=[])
            published = True
        return OperationResult.ok(data=self.store.list_job_posts(company_id, published))

    def list_by_handle(self, handle: str, user_id: Optional[str] = None, published: Optional[bool] = None) -> OperationResult:
        company = self.store.get_company_by_handle(handle.lower())
        if company is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Company not found")
        return self.list_job_posts(company.id, user_id, published)

    def get_job_post(self, company_id: str, job_post_id: str, user_id: Optional[str] = None) -> OperationResult:
        job_post = self.store.get_job_post(company_id, job_post_id)
        if job_post is None or (not job_post.published and not self._is_member(company_id, user_id)):
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Job post not found")
        return OperationResult.ok(data=job_post)

    def create_job_post(self, company_id: str, job_data: JobPostCreate, user_id: str) -> OperationResult:
        if not self.authority.has_permission(user_id, company_id, "create_job_post"):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to create job posts")

        now = self._clock()
        job_post = self.store.insert_job_post({
            **job_data.model_dump(),
            "company_id": company_id,
            "created_by": user_id,
            "published_at": now.isoformat() if job_data.published else None,
            "created_at": now.isoformat()
        })
        logger.info(f"User {user_id} created job post {job_post.id} in {company_id}")
        return OperationResult.ok(data=job_post, message="Job post created successfully")

    def update_job_post(
        self, company_id: str, job_post_id: str, job_data: JobPostUpdate, user_id: str
    ) -> OperationResult:
        job_post = self.store.get_job_post(company_id, job_post_id)
        if job_post is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Job post not found")
        if not self.authority.can_manage_job_post(user_id, company_id, job_post.created_by):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to edit this job post")

        update_data = job_data.model_dump(exclude_unset=True)
        if update_data.get("published") and job_post.published_at is None:
            update_data["published_at"] = self._clock().isoformat()
        if not update_data:
            return OperationResult.ok(data=job_post, message="Nothing to update")

        updated = self.store.update_job_post(job_post.id, update_data)
        if updated is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Job post not found")

        logger.info(f"User {user_id} updated job post {job_post.id} in {company_id}")
        return OperationResult.ok(data=updated, message="Job post updated successfully")

    def delete_job_post(self, company_id: str, job_post_id: str, user_id: str) -> OperationResult:
        job_post = self.store.get_job_post(company_id, job_post_id)
        if job_post is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Job post not found")
        if not self.authority.can_manage_job_post(user_id, company_id, job_post.created_by):
            return OperationResult.fail(ErrorKind.FORBIDDEN, "You do not have permission to delete this job post")

        if self.store.delete_job_post(job_post.id) == 0:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Job post not found")

        logger.info(f"User {user_id} deleted job post {job_post.id} from {company_id}")
        return OperationResult.ok(message="Job post deleted successfully")
