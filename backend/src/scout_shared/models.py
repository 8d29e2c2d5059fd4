"""
Data models and status constants for the scout job workflow.
Based on the job lifecycle: draft → posted → accepted → in_progress → submitted → approved/rejected → paid
Status and payout type values are part of the public wire contract.
"""


class JobStatus:
    """Job lifecycle statuses."""
    DRAFT = 'draft'
    POSTED = 'posted'
    ACCEPTED = 'accepted'
    IN_PROGRESS = 'in_progress'
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    PAID = 'paid'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'

    ALL = (DRAFT, POSTED, ACCEPTED, IN_PROGRESS, SUBMITTED,
           APPROVED, REJECTED, PAID, CANCELLED, EXPIRED)
    SUBMITTABLE = (ACCEPTED, IN_PROGRESS)
    # Scout feed groupings
    SCOUT_ACTIVE = (ACCEPTED, IN_PROGRESS, SUBMITTED)
    SCOUT_HISTORY = (APPROVED, REJECTED, PAID)


class SubmissionStatus:
    """Submission review statuses."""
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    RESUBMIT_REQUIRED = 'resubmit_required'

    DECISIONS = (APPROVED, REJECTED, RESUBMIT_REQUIRED)
    ALL = (SUBMITTED,) + DECISIONS


class StepStatus:
    """Per-answer review outcome."""
    PENDING = 'pending'
    PASSED = 'passed'
    FAILED = 'failed'

    REVIEWED = (PASSED, FAILED)


class StepType:
    """Inspection step types."""
    YES_NO = 'yes_no'
    TEXT = 'text'
    NUMBER = 'number'
    PHOTO = 'photo'
    VIDEO = 'video'
    CHECKLIST = 'checklist'

    ALL = (YES_NO, TEXT, NUMBER, PHOTO, VIDEO, CHECKLIST)
    MEDIA = (PHOTO, VIDEO)


class MediaType:
    """Evidence media kinds."""
    PHOTO = 'photo'
    VIDEO = 'video'

    ALL = (PHOTO, VIDEO)


class PayoutType:
    """How an approved job is settled."""
    CASH = 'cash'
    DISCOUNT = 'discount'
    FREE_PRODUCT = 'free_product'
    MIXED = 'mixed'

    ALL = (CASH, DISCOUNT, FREE_PRODUCT, MIXED)
    WITH_VOUCHER = (DISCOUNT, FREE_PRODUCT, MIXED)
    WITH_CASH = (CASH, MIXED)


class PayoutStatus:
    """Payout settlement statuses."""
    PENDING = 'pending'
    PAID = 'paid'


class VoucherStatus:
    """Voucher statuses."""
    ACTIVE = 'active'
    REDEEMED = 'redeemed'
    EXPIRED = 'expired'


class CompanyRole:
    """Tenant membership roles."""
    OWNER = 'company_owner'
    ADMIN = 'company_admin'
    MEMBER = 'company_member'

    MANAGERS = (OWNER, ADMIN)


class AuditAction:
    """Audit log actions recorded by the workflow."""
    GENERATE_EVIDENCE_PACKET = 'generate_evidence_packet'
