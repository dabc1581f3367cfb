from rest_framework import serializers
from .models import ALL, Notice

BRANCH_SELECTORS = [ALL] + [code for code, _ in Notice.BRANCH_CHOICES]
YEAR_SELECTORS = [ALL] + [str(value) for value, _ in Notice.YEAR_CHOICES]


class TargetAudienceSerializer(serializers.Serializer):
    """Branch/year selectors; "All" disables filtering on that dimension"""
    branches = serializers.ListField(
        child=serializers.ChoiceField(choices=BRANCH_SELECTORS),
        required=False,
        allow_empty=False,
        error_messages={'not_a_list': 'Branches must be an array', 'empty': 'Branches cannot be empty'}
    )
    years = serializers.ListField(
        child=serializers.ChoiceField(choices=YEAR_SELECTORS),
        required=False,
        allow_empty=False,
        error_messages={'not_a_list': 'Years must be an array', 'empty': 'Years cannot be empty'}
    )


class NoticeAuthorSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(source='display_name', read_only=True)


class NoticeSerializer(serializers.ModelSerializer):
    targetAudience = serializers.JSONField(source='target_audience', required=False, allow_null=True)
    scheduledFor = serializers.DateTimeField(source='scheduled_for', required=False, allow_null=True)
    attachmentUrl = serializers.URLField(source='attachment_url', required=False, allow_blank=True, max_length=500)
    isPublished = serializers.BooleanField(source='is_published', required=False)
    author = NoticeAuthorSerializer(read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Notice
        fields = [
            'id', 'title', 'content', 'category', 'branch', 'year',
            'targetAudience', 'scheduledFor', 'priority', 'attachmentUrl',
            'views', 'isPublished', 'author', 'createdAt', 'updatedAt',
        ]
        read_only_fields = ['id', 'views']
        extra_kwargs = {
            'title': {'error_messages': {
                'required': 'Please add a title',
                'blank': 'Please add a title',
                'max_length': 'Title cannot be more than 100 characters',
            }},
            'content': {'error_messages': {
                'required': 'Please add content',
                'blank': 'Please add content',
                'max_length': 'Content cannot be more than 1000 characters',
            }},
            'category': {'error_messages': {
                'required': 'Please add a category',
            }},
        }

    def validate_targetAudience(self, value):
        if value is None:
            return None
        if not isinstance(value, dict):
            raise serializers.ValidationError('Target audience must be an object')
        audience = TargetAudienceSerializer(data=value)
        if not audience.is_valid():
            raise serializers.ValidationError(audience.errors)
        selectors = {key: list(items) for key, items in audience.validated_data.items()}
        return selectors or None
