from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone

# -------------------------------
# Score actions & badges
# -------------------------------
SCORE_ACTIONS = [
    ("BorrowCompleted", "Borrow Completed"),
    ("OnTimeReturn", "On-Time Return"),
    ("LendApproved", "Lend Approved"),
    ("LendCancelled", "Lend Cancelled"),
]

SCORE_POINTS = {
    "BorrowCompleted": 1,
    "OnTimeReturn": 1,
    "LendApproved": 4,
    "LendCancelled": -4,
}

BADGE_TYPES = [
    # Milestone badges
    ("Bronze", "Bronze"),
    ("Silver", "Silver"),
    ("Gold", "Gold"),
    # Achievement badges
    ("FirstLend", "First Lend"),
    ("ReliableBorrower", "Reliable Borrower"),
    ("GenerousLender", "Generous Lender"),
    ("PerfectRecord", "Perfect Record"),
    ("CommunityBuilder", "Community Builder"),
]

MILESTONE_BADGES = {
    "Bronze": 10,
    "Silver": 50,
    "Gold": 100,
}

ACHIEVEMENT_BADGES = {
    "FirstLend": 1,
    "ReliableBorrower": 10,
    "GenerousLender": 50,
    "PerfectRecord": 25,
    "CommunityBuilder": 10,
}


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("Email is required")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_email_verified", True)
        return self._create_user(email, password, **extra_fields)

    def get_by_natural_key(self, email):
        return self.get(email__iexact=email)


class User(AbstractUser):
    username = None
    email = models.EmailField(unique=True)
    street_address = models.CharField(max_length=255, blank=True, default="")

    is_email_verified = models.BooleanField(default=False)
    email_verification_token = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    email_verification_expiry = models.DateTimeField(null=True, blank=True)

    loop_score = models.IntegerField(default=0)
    consecutive_on_time_returns = models.PositiveIntegerField(default=0)
    invited_by = models.ForeignKey(
        "self", on_delete=models.SET_NULL, null=True, blank=True, related_name="invited_users"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    objects = UserManager()

    def full_name(self):
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    def __str__(self):
        return f"{self.email} ({self.loop_score} pts)"


class ScoreHistoryEntry(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="score_history")
    timestamp = models.DateTimeField(default=timezone.now)
    points = models.IntegerField()
    action_type = models.CharField(max_length=30, choices=SCORE_ACTIONS)
    item_request = models.ForeignKey(
        "item_requests.ItemRequest", on_delete=models.SET_NULL, null=True, blank=True, related_name="score_entries"
    )
    item_name = models.CharField(max_length=200, blank=True, default="")

    class Meta:
        ordering = ("-timestamp", "-id")
        verbose_name_plural = "Score history"

    def __str__(self):
        return f"{self.user.email} {self.points:+d} ({self.action_type})"


class BadgeAward(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="badges")
    badge_type = models.CharField(max_length=30, choices=BADGE_TYPES)
    awarded_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("awarded_at", "id")
        constraints = [
            models.UniqueConstraint(fields=["user", "badge_type"], name="unique_badge_per_user"),
        ]

    def __str__(self):
        return f"{self.badge_type} - {self.user.email}"
