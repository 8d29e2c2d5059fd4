"""
Shared fixtures: components wired to in-memory fakes.
"""
import os
import sys
from decimal import Decimal

import pytest

# Add backend/src to path for import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from fakes import (  # noqa: E402
    COMPANY_ID, LOCATION_ID, MANAGER_ID, MEMBER_ID, SCOUT_ID,
    FakeBlobStore, FakeRepository, RecordingNotifier, store_audit_steps, valid_payload,
)
from scout_shared.catalog import TemplateCatalog  # noqa: E402
from scout_shared.evidence import EvidencePacketCompiler  # noqa: E402
from scout_shared.job_poster import JobPoster  # noqa: E402
from scout_shared.models import CompanyRole  # noqa: E402
from scout_shared.review import ReviewEngine  # noqa: E402
from scout_shared.settlement import PayoutIssuer  # noqa: E402
from scout_shared.submissions import SubmissionRecorder  # noqa: E402


@pytest.fixture
def repo():
    repository = FakeRepository()
    repository.add_member(COMPANY_ID, MANAGER_ID, CompanyRole.OWNER)
    repository.add_member(COMPANY_ID, MEMBER_ID, CompanyRole.MEMBER)
    return repository


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store():
    return FakeBlobStore()


@pytest.fixture
def catalog(repo):
    return TemplateCatalog(repo)


@pytest.fixture
def poster(repo, notifier):
    return JobPoster(repo, notifier)


@pytest.fixture
def recorder(repo, notifier):
    return SubmissionRecorder(repo, notifier)


@pytest.fixture
def issuer(repo, notifier):
    return PayoutIssuer(repo, notifier)


@pytest.fixture
def engine(repo, issuer, notifier):
    return ReviewEngine(repo, issuer, notifier)


@pytest.fixture
def compiler(repo, store):
    return EvidencePacketCompiler(repo, store)


@pytest.fixture
def template(catalog):
    return catalog.create_template(COMPANY_ID, MANAGER_ID, 'Store audit', 'retail', 30, store_audit_steps())


@pytest.fixture
def make_job(poster, template):
    """Create a job from the store audit template; posted unless publish=False."""
    def _make(publish=True, **overrides):
        params = {
            'payout_amount': Decimal('50'),
            'currency': 'RON',
            'payout_type': 'cash',
        }
        params.update(overrides)
        return poster.create_job(
            template_id=template['templateId'],
            location_id=LOCATION_ID,
            title='Audit store 12',
            caller_id=MANAGER_ID,
            publish=publish,
            **params
        )
    return _make


@pytest.fixture
def make_submission(poster, recorder, repo, make_job):
    """Post, accept and submit a job; returns the submission."""
    def _make(**job_overrides):
        job = make_job(**job_overrides)
        poster.accept_job(job['jobId'], SCOUT_ID)
        answers, media = valid_payload(repo.list_job_steps(job['jobId']))
        return recorder.submit(job['jobId'], SCOUT_ID, answers, media, 'Visited at noon')
    return _make
