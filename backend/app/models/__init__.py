from .users import User
from .products import Product
from .orders import Order, OrderItem
from .affiliates import Affiliate, AffiliateLink, ReferralCode
from .commissions import CommissionReferral
from .wallets import Wallet
from .banks import Bank
from .withdrawals import WithdrawalRequest
from .email_queue import EmailQueue
