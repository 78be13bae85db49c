from .account import Account
from .resource_bundle import ResourceBundle
from .chicken import Chicken
from .transaction import Transaction
from .referral_earning import ReferralEarning
from .milestone_reward import MilestoneReward
from .salary_payment import SalaryPayment
from .mystery_box_reward import MysteryBoxReward
from .daily_reward import DailyReward
from .spin_history import SpinHistory
from .price import Price
from .app_setting import AppSetting

__all__ = [
    "Account",
    "ResourceBundle",
    "Chicken",
    "Transaction",
    "ReferralEarning",
    "MilestoneReward",
    "SalaryPayment",
    "MysteryBoxReward",
    "DailyReward",
    "SpinHistory",
    "Price",
    "AppSetting",
]
