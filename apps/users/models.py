from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class User(AbstractUser):
    ROLE_CHOICES = [
        ('student', 'Student'),
        ('teacher', 'Teacher'),
        ('admin', 'Admin'),
    ]
    BRANCH_CHOICES = [
        ('CSE', 'Computer Science'),
        ('ECE', 'Electronics & Communication'),
        ('EEE', 'Electrical & Electronics'),
        ('ME', 'Mechanical'),
        ('CE', 'Civil'),
    ]

    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='student')
    branch = models.CharField(max_length=5, choices=BRANCH_CHOICES, blank=True)
    year = models.PositiveSmallIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(4)]
    )

    class Meta:
        indexes = [
            models.Index(fields=['role', 'branch', 'year'], name='users_role_branch_year_idx'),
        ]

    def __str__(self):
        return f"{self.username} ({self.role})"

    @property
    def display_name(self):
        return self.get_full_name() or self.username
