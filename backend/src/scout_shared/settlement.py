"""
Payout & Voucher Issuer.
Creates exactly one settlement per approved job: a cash payout record and,
for non-cash payout types, a reward voucher. Also settles payouts and
redeems vouchers.
"""
import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from . import fsm
from .auth import require_manager, require_member
from .catalog import require_text
from .config import config
from .errors import ConflictError, ConcurrentUpdateError, NotFoundError, UnexpectedError
from .events import event_name
from .fsm import JobEvent
from .logging import logger, log_transition
from .models import JobStatus, PayoutStatus, PayoutType, VoucherStatus
from .repository import VoucherCodeTaken
from .utils import new_id, to_iso, utc_now

# No 0/O or 1/I
VOUCHER_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'

DEFAULT_TERMS = {
    PayoutType.DISCOUNT: 'Discount voucher. Single use, valid until the expiry date.',
    PayoutType.FREE_PRODUCT: 'Voucher for one free product. Single use, valid until the expiry date.',
    PayoutType.MIXED: 'Reward voucher issued with a cash payout. Single use, valid until the expiry date.',
}


def generate_voucher_code(prefix: str = None, length: int = None) -> str:
    """Random voucher code, e.g. SC-7KQ2M9XD."""
    prefix = config.VOUCHER_CODE_PREFIX if prefix is None else prefix
    length = length or config.VOUCHER_CODE_LENGTH
    return prefix + ''.join(secrets.choice(VOUCHER_CODE_ALPHABET) for _ in range(length))


def cash_amount(job: Dict[str, Any]) -> Decimal:
    """Cash leg of the payout; the reward leg of non-cash types lives in the voucher."""
    if job.get('payoutType', PayoutType.CASH) in PayoutType.WITH_CASH:
        return Decimal(str(job.get('payoutAmount', 0)))
    return Decimal('0')


def voucher_value(job: Dict[str, Any]) -> Decimal:
    if job.get('payoutType') == PayoutType.FREE_PRODUCT:
        return Decimal('0')
    return Decimal(str(job.get('payoutAmount', 0)))


def voucher_expiry(job: Dict[str, Any], now: datetime) -> str:
    if job.get('voucherExpiresAt'):
        return job['voucherExpiresAt']
    return to_iso(now + timedelta(days=config.VOUCHER_DEFAULT_EXPIRY_DAYS))


def terms_text(job: Dict[str, Any]) -> str:
    return job.get('rewardDescription') or DEFAULT_TERMS[job['payoutType']]


class PayoutIssuer:
    """Issues, settles and redeems the financial side effects of approved jobs."""

    def __init__(self, repository, notifier, code_generator: Callable[[], str] = generate_voucher_code):
        self.repository = repository
        self.notifier = notifier
        self.code_generator = code_generator

    def _build_voucher(self, job: Dict[str, Any], submission_id: str, now: datetime) -> Dict[str, Any]:
        return {
            'voucherId': new_id(),
            'code': self.code_generator(),
            'companyId': job['companyId'],
            'jobId': job['jobId'],
            'submissionId': submission_id,
            'issuedTo': job['assignedScoutId'],
            'value': voucher_value(job),
            'currency': job.get('currency', config.DEFAULT_CURRENCY),
            'expiresAt': voucher_expiry(job, now),
            'termsText': terms_text(job),
            'status': VoucherStatus.ACTIVE,
            'createdAt': to_iso(now),
        }

    def issue_for_job(self, job: Dict[str, Any], submission_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Create the payout (and voucher, for non-cash types) for an approved job.

        Safe to call again: an existing payout is returned unchanged. Code
        claim, voucher and payout are written in one transaction, so a failure
        never leaves an unlinked voucher behind.

        Returns:
            The payout item with a ``voucher`` key, or None when no scout is assigned
        """
        job_id = job['jobId']
        scout_id = job.get('assignedScoutId')
        if not scout_id:
            logger.warning(f"Job {job_id} approved without an assigned scout; nothing to settle")
            return None

        existing = self.repository.get_payout(job_id)
        if existing:
            logger.info(f"Job {job_id} already has payout {existing.get('payoutId')}")
            return existing

        now = utc_now()
        payout_type = job.get('payoutType', PayoutType.CASH)
        payout = {
            'jobId': job_id,
            'payoutId': new_id(),
            'companyId': job['companyId'],
            'scoutId': scout_id,
            'submissionId': submission_id or job.get('approvedSubmissionId'),
            'amount': cash_amount(job),
            'currency': job.get('currency', config.DEFAULT_CURRENCY),
            'payoutType': payout_type,
            'voucherId': None,
            'status': PayoutStatus.PENDING,
            'createdAt': to_iso(now),
        }

        voucher = None
        if payout_type not in PayoutType.WITH_VOUCHER:
            created = self.repository.create_settlement(payout)
        else:
            for attempt in range(1, config.VOUCHER_CODE_MAX_ATTEMPTS + 1):
                voucher = self._build_voucher(job, payout['submissionId'], now)
                payout['voucherId'] = voucher['voucherId']
                try:
                    created = self.repository.create_settlement(payout, voucher)
                    break
                except VoucherCodeTaken:
                    logger.warning(f"Voucher code collision for job {job_id} "
                                   f"(attempt {attempt}/{config.VOUCHER_CODE_MAX_ATTEMPTS})")
            else:
                logger.error(f"Could not generate a unique voucher code for job {job_id}")
                raise UnexpectedError('Could not generate a unique voucher code')

        if not created:
            logger.info(f"Payout for job {job_id} was created concurrently; returning it")
            return self.repository.get_payout(job_id)

        logger.info(f"Issued payout {payout['payoutId']} for job {job_id}: {payout['amount']} {payout['currency']}"
                    + (f" with voucher {voucher['voucherId']}" if voucher else ''))
        self.notifier.emit(event_name('payout', PayoutStatus.PENDING), {
            'jobId': job_id,
            'payoutId': payout['payoutId'],
            'scoutId': scout_id,
            'voucherId': payout['voucherId'],
        })
        return dict(payout, voucher=voucher)

    def mark_paid(self, job_id: str, caller_id: str) -> Dict[str, Any]:
        """
        Flip the payout to ``paid`` and the job to ``paid`` together.

        An approved job whose payout is missing (settlement failed after the
        review committed) gets it issued here first.
        """
        job = self.repository.get_job(job_id)
        if not job:
            raise NotFoundError('Job not found')
        require_manager(self.repository, job['companyId'], caller_id)

        payout = self.repository.get_payout(job_id)
        if not payout and job['status'] == JobStatus.APPROVED:
            payout = self.issue_for_job(job)
        if not payout:
            raise NotFoundError('Payout not found')
        if payout['status'] == PayoutStatus.PAID:
            raise ConflictError('Payout is already paid')

        now = to_iso(utc_now())
        planned = fsm.plan(job, JobEvent.SETTLE, now)
        if not self.repository.settle_payout(job_id, now, planned.updates):
            raise ConcurrentUpdateError('Payout was settled concurrently')

        log_transition('Payout', payout['payoutId'], PayoutStatus.PENDING, PayoutStatus.PAID, caller_id)
        log_transition('Job', job_id, planned.from_status, planned.to_status, caller_id)
        updated_job = dict(job)
        updated_job.update(planned.updates)
        self.notifier.job_status_changed(updated_job, caller_id)

        paid = dict(payout, status=PayoutStatus.PAID, paidAt=now)
        paid.pop('voucher', None)
        return paid

    def redeem_voucher(self, code: str, caller_id: str) -> Dict[str, Any]:
        """
        Redeem an active voucher by code for a member of the issuing company.

        Raises:
            NotFoundError: unknown code
            AuthorizationError: caller is not a member of the voucher's company
            ConflictError: voucher already redeemed or expired
        """
        voucher = self.repository.find_voucher_by_code(require_text(code, 'code').upper())
        if not voucher:
            raise NotFoundError('Voucher not found')
        require_member(self.repository, voucher['companyId'], caller_id)

        if voucher['status'] != VoucherStatus.ACTIVE:
            raise ConflictError(f"Voucher is {voucher['status']}")

        now = utc_now()
        now_iso = to_iso(now)
        if voucher.get('expiresAt') and datetime.fromisoformat(voucher['expiresAt']) <= now:
            if self.repository.update_voucher_status(voucher['voucherId'], VoucherStatus.ACTIVE,
                                                     {'status': VoucherStatus.EXPIRED, 'updatedAt': now_iso}):
                log_transition('Voucher', voucher['voucherId'], VoucherStatus.ACTIVE, VoucherStatus.EXPIRED)
            raise ConflictError('Voucher has expired')

        updates = {
            'status': VoucherStatus.REDEEMED,
            'redeemedAt': now_iso,
            'redeemedBy': caller_id,
            'updatedAt': now_iso,
        }
        if not self.repository.update_voucher_status(voucher['voucherId'], VoucherStatus.ACTIVE, updates):
            raise ConcurrentUpdateError('Voucher was redeemed concurrently')

        log_transition('Voucher', voucher['voucherId'], VoucherStatus.ACTIVE, VoucherStatus.REDEEMED, caller_id)
        self.notifier.emit(event_name('voucher', VoucherStatus.REDEEMED), {
            'voucherId': voucher['voucherId'],
            'companyId': voucher['companyId'],
            'jobId': voucher.get('jobId'),
        })
        updated = dict(voucher)
        updated.update(updates)
        return updated
