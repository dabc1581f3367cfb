from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.users.models import User

ALL = 'All'


class Notice(models.Model):
    """An announcement posted by a teacher for a branch/year audience"""
    CATEGORY_CHOICES = [
        ('General', 'General'),
        ('Academic', 'Academic'),
        ('Event', 'Event'),
        ('Important', 'Important'),
        ('Other', 'Other'),
    ]
    PRIORITY_CHOICES = [
        ('Low', 'Low'),
        ('Medium', 'Medium'),
        ('High', 'High'),
        ('Urgent', 'Urgent'),
    ]
    BRANCH_CHOICES = User.BRANCH_CHOICES
    YEAR_CHOICES = [(1, '1st Year'), (2, '2nd Year'), (3, '3rd Year'), (4, '4th Year')]

    title = models.CharField(max_length=100)
    content = models.TextField(max_length=1000)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)

    # Flat target; target_audience takes precedence when both are set
    branch = models.CharField(max_length=5, choices=BRANCH_CHOICES, blank=True)
    year = models.PositiveSmallIntegerField(
        choices=YEAR_CHOICES, null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)]
    )
    # {"branches": ["CSE", "ECE"], "years": ["All"]}
    target_audience = models.JSONField(null=True, blank=True)

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notices'
    )
    scheduled_for = models.DateTimeField(null=True, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='Medium')
    attachment_url = models.URLField(max_length=500, blank=True)
    views = models.PositiveIntegerField(default=0)
    is_published = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['author', 'created_at'], name='notices_author_created_idx'),
            models.Index(fields=['category', 'branch', 'year'], name='notices_cat_branch_year_idx'),
        ]

    def __str__(self):
        return self.title

    def _selectors(self, key, flat_value):
        if self.target_audience:
            return self.target_audience.get(key)
        if flat_value:
            return [flat_value]
        return None

    def target_branches(self):
        """
        Branch selectors used for fan-out. None means every branch;
        an empty list matches no one.
        """
        branches = self._selectors('branches', self.branch)
        if branches is None or ALL in branches:
            return None
        return list(branches)

    def target_years(self):
        """Year selectors as integers, with the same None/empty rules"""
        years = self._selectors('years', self.year)
        if years is None or ALL in years:
            return None
        return [int(y) for y in years]

    def can_be_modified_by(self, user):
        return self.author_id == user.id or user.role == 'admin'
