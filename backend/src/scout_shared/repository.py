"""
Storage interface for the scout job workflow.

Components receive a repository instead of reaching for module level AWS
clients, so tests can pass an in-memory implementation. Every method that
changes more than one record is a single atomic unit of work; methods that
return ``bool`` report whether their condition held (``False`` means another
writer got there first and nothing was written).

Items are plain dicts with camelCase attribute names, as stored in DynamoDB.
"""
from typing import Any, Dict, List, Optional


class VoucherCodeTaken(Exception):
    """The generated voucher code already exists; retry with a fresh code."""


class ScoutRepository:
    """Interface implemented by ``DynamoRepository`` and test fakes."""

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def get_template(self, template_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def list_templates(self, company_id: str) -> List[Dict[str, Any]]:
        """Every template of a company, archived ones included."""
        raise NotImplementedError

    def list_template_steps(self, template_id: str) -> List[Dict[str, Any]]:
        """Steps of a template ordered by ``orderIndex``."""
        raise NotImplementedError

    def create_template(self, template: Dict[str, Any], steps: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def replace_template_steps(self, template_id: str, expected_version: int,
                               template_updates: Dict[str, Any], steps: List[Dict[str, Any]]) -> bool:
        """
        Update template fields and swap the whole step set in one transaction.

        Only applies while the template is still at ``expected_version``.
        """
        raise NotImplementedError

    def archive_template(self, template_id: str, archived_at: str) -> bool:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    def create_job(self, job: Dict[str, Any], steps: List[Dict[str, Any]]) -> bool:
        """
        Insert a job and its step snapshot.

        Only applies while the source template is active and still at
        ``job['templateVersion']``.
        """
        raise NotImplementedError

    def get_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def list_job_steps(self, job_id: str) -> List[Dict[str, Any]]:
        """Steps of a job ordered by ``orderIndex``."""
        raise NotImplementedError

    def transition_job(self, job_id: str, from_status: str, updates: Dict[str, Any]) -> bool:
        """Write ``updates`` only if the job's status is still ``from_status``."""
        raise NotImplementedError

    def list_jobs_by_status(self, status: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def list_jobs_by_scout(self, scout_id: str) -> List[Dict[str, Any]]:
        """Jobs assigned to a scout, in any status."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Submissions
    # -------------------------------------------------------------------------

    def create_submission(self, submission: Dict[str, Any], answers: List[Dict[str, Any]],
                          media: List[Dict[str, Any]], job_from_status: str,
                          job_updates: Dict[str, Any]) -> bool:
        """
        Insert a submission with its answers and media and move the job.

        Only applies while the job is still in ``job_from_status`` and has no
        live submission.
        """
        raise NotImplementedError

    def get_submission(self, submission_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def list_submissions(self, company_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Submissions for a company's jobs, optionally only those in ``status``."""
        raise NotImplementedError

    def list_step_answers(self, submission_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def list_media(self, submission_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def complete_review(self, submission_id: str, submission_updates: Dict[str, Any],
                        step_results: List[Dict[str, Any]], job_id: str,
                        job_from_status: str, job_updates: Dict[str, Any]) -> bool:
        """
        Record a review decision, per-step results and the job transition.

        Only applies while the submission is still ``submitted`` and the job
        still in ``job_from_status``. Clears the job's live submission.
        """
        raise NotImplementedError

    def set_packet_path(self, submission_id: str, packet_path: str, generated_at: str) -> None:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Payouts & Vouchers
    # -------------------------------------------------------------------------

    def get_payout(self, job_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def create_settlement(self, payout: Dict[str, Any], voucher: Optional[Dict[str, Any]] = None) -> bool:
        """
        Insert a payout and, when given, its voucher and voucher code claim.

        Returns ``False`` when the job already has a payout.

        Raises:
            VoucherCodeTaken: the voucher code is already claimed
        """
        raise NotImplementedError

    def settle_payout(self, job_id: str, paid_at: str, job_updates: Dict[str, Any]) -> bool:
        """Flip the payout pending -> paid and the job approved -> paid together."""
        raise NotImplementedError

    def get_voucher(self, voucher_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def find_voucher_by_code(self, code: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def update_voucher_status(self, voucher_id: str, from_status: str, updates: Dict[str, Any]) -> bool:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Tenancy & Audit
    # -------------------------------------------------------------------------

    def get_company_role(self, company_id: str, user_id: str) -> Optional[str]:
        raise NotImplementedError

    def append_audit_log(self, entry: Dict[str, Any]) -> None:
        raise NotImplementedError
