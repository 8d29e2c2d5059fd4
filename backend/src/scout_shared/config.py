"""
Configuration module for scout job Lambda handlers.
Loads all environment variables needed by the workflow.
"""
import os


class Config:
    """Centralized configuration from environment variables."""

    # AWS Region
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')

    # DynamoDB Tables
    TEMPLATES_TABLE = os.environ.get('TEMPLATES_TABLE', '')
    TEMPLATE_STEPS_TABLE = os.environ.get('TEMPLATE_STEPS_TABLE', '')
    JOBS_TABLE = os.environ.get('JOBS_TABLE', '')
    JOB_STEPS_TABLE = os.environ.get('JOB_STEPS_TABLE', '')
    SUBMISSIONS_TABLE = os.environ.get('SUBMISSIONS_TABLE', '')
    STEP_ANSWERS_TABLE = os.environ.get('STEP_ANSWERS_TABLE', '')
    MEDIA_TABLE = os.environ.get('MEDIA_TABLE', '')
    PAYOUTS_TABLE = os.environ.get('PAYOUTS_TABLE', '')
    VOUCHERS_TABLE = os.environ.get('VOUCHERS_TABLE', '')
    VOUCHER_CODES_TABLE = os.environ.get('VOUCHER_CODES_TABLE', '')
    COMPANY_USERS_TABLE = os.environ.get('COMPANY_USERS_TABLE', '')
    AUDIT_LOG_TABLE = os.environ.get('AUDIT_LOG_TABLE', '')

    # S3 Bucket
    EVIDENCE_BUCKET = os.environ.get('EVIDENCE_BUCKET', '')

    # EventBridge
    EVENT_BUS_NAME = os.environ.get('EVENT_BUS_NAME', 'default')
    EVENT_SOURCE = os.environ.get('EVENT_SOURCE', 'operations.scouts')

    # Payouts & Vouchers
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'RON')
    VOUCHER_CODE_PREFIX = os.environ.get('VOUCHER_CODE_PREFIX', 'SC-')
    VOUCHER_CODE_LENGTH = int(os.environ.get('VOUCHER_CODE_LENGTH', '8'))
    VOUCHER_CODE_MAX_ATTEMPTS = int(os.environ.get('VOUCHER_CODE_MAX_ATTEMPTS', '5'))
    VOUCHER_DEFAULT_EXPIRY_DAYS = int(os.environ.get('VOUCHER_DEFAULT_EXPIRY_DAYS', '30'))


config = Config()
