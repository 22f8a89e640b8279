from .users import create_user, get_user, get_user_by_email
from .orders import get_order, get_order_by_reference
from .wallets import get_or_create_wallet, get_wallet_for_user
from .commissions import get_commission, get_commission_for_order, list_commissions
from .withdrawals import get_withdrawal, list_withdrawals
from .banks import create_bank, get_bank_for_user, list_banks_for_user
from .affiliates import (
    get_affiliate,
    get_affiliate_for_user,
    get_link_by_slug,
    get_referral_code,
)
from .email_queue import create_email_queue, list_queued_emails
