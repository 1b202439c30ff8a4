"""
Dealflow – SQLAlchemy ORM models package.

Imports all model classes so ``Base.metadata`` can discover them
through a single ``import dealflow.models``.
"""

from dealflow.models.idea import IdeaStatus, InvestmentIdea  # noqa: F401
from dealflow.models.feedback import Feedback                # noqa: F401
from dealflow.models.member import Member                    # noqa: F401
