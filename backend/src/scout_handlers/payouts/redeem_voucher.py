"""
Redeem Voucher Handler.
POST /vouchers/redeem
Staff of the issuing company scan or type a voucher code to redeem it.
"""
from scout_shared.auth import require_caller
from scout_shared.dynamo import get_repository
from scout_shared.events import get_notifier
from scout_shared.settlement import PayoutIssuer
from scout_shared.utils import api_handler, parse_body


@api_handler()
def handler(event, context):
    caller_id = require_caller(event)
    body = parse_body(event)

    voucher = PayoutIssuer(get_repository(), get_notifier()).redeem_voucher(body.get('code'), caller_id)
    return {
        'voucherId': voucher['voucherId'],
        'code': voucher['code'],
        'value': voucher['value'],
        'currency': voucher['currency'],
        'termsText': voucher.get('termsText'),
        'status': voucher['status'],
        'redeemedAt': voucher['redeemedAt'],
    }
