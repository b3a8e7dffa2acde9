# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.startup_call import StartupCall
from models.budget import Budget, BudgetCategory
from models.expense import Expense
from models.notification import Notification

__all__ = [
    "StartupCall",
    "Budget",
    "BudgetCategory",
    "Expense",
    "Notification",
]
