# core/constants.py
ROLE_CHOICES = (
    ('worker', 'Worker'),
    ('employer', 'Employer'),
)

SKILL_LEVEL_CHOICES = (
    ('beginner', 'Beginner'),
    ('intermediate', 'Intermediate'),
    ('advanced', 'Advanced'),
    ('expert', 'Expert'),
)

JOB_CATEGORY_CHOICES = (
    ('technology', 'Technology'),
    ('design', 'Design'),
    ('marketing', 'Marketing'),
    ('writing', 'Writing'),
    ('consulting', 'Consulting'),
    ('other', 'Other'),
)

JOB_DURATION_CHOICES = (
    ('hourly', 'Hourly'),
    ('daily', 'Daily'),
    ('weekly', 'Weekly'),
    ('monthly', 'Monthly'),
    ('project', 'Project'),
)

JOB_STATUS_CHOICES = (
    ('open', 'Open'),                # Accepting applications
    ('in-progress', 'In Progress'),  # Worker selected and contract awarded
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
)

JOB_APPLICATION_STATUS_CHOICES = (
    ('pending', 'Pending'),      # Worker applied, awaiting employer response
    ('accepted', 'Accepted'),    # Employer accepted worker's application
    ('rejected', 'Rejected'),    # Employer rejected worker's application
    ('withdrawn', 'Withdrawn'),  # Worker pulled the application back
)

CONTRACT_STATUS_CHOICES = (
    ('draft', 'Draft'),
    ('active', 'Active'),
    ('paused', 'Paused'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
    ('disputed', 'Disputed'),
)

CONTRACT_PAYMENT_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('partial', 'Partial'),
    ('completed', 'Completed'),
)

MILESTONE_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('in-progress', 'In Progress'),
    ('completed', 'Completed'),
    ('approved', 'Approved'),
)

PAYMENT_TYPE_CHOICES = (
    ('milestone', 'Milestone'),
    ('final', 'Final'),
    ('bonus', 'Bonus'),
)

DELIVERABLE_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('submitted', 'Submitted'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
)

DISPUTE_STATUS_CHOICES = (
    ('open', 'Open'),
    ('under_review', 'Under Review'),
    ('resolved', 'Resolved'),
    ('closed', 'Closed'),
)

MESSAGE_TYPE_CHOICES = (
    ('text', 'Text'),
    ('file', 'File'),
    ('milestone_update', 'Milestone Update'),
)

PAYMENT_ORDER_STATUS_CHOICES = (
    ('pending', 'Pending'),      # Created at the gateway, outcome unknown
    ('completed', 'Completed'),  # Verified and recorded on the contract
    ('failed', 'Failed'),        # Gateway answered with a definitive failure
)

WALLET_TRANSACTION_TYPE_CHOICES = (
    ('credit', 'Credit'),
    ('debit', 'Debit'),
)

# Side effects emitted by the lifecycle engines
EFFECT_NOTIFY = 'notify'
EFFECT_CREDIT_WALLET = 'credit_wallet'


def choice_values(choices):
    return [value for value, _ in choices]


def is_valid_rating(value):
    """Whole stars from 1 to 5; booleans are ints in Python and are refused."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5
