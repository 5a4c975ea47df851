from rest_framework import serializers

from .models import DevicePlatform, DeviceToken
from .services import PushRequest


MISSING_FIELDS_MESSAGE = 'Missing required fields: user_ids, title, body'


# =============================================================================
# Input Serializers
# =============================================================================

class PushRequestSerializer(serializers.Serializer):
    """
    Validate a push dispatch request.

    Fields:
        user_ids (list[UUID]): Recipients (non-empty)
        title (str): Alert title
        body (str): Alert body
        data (dict[str, str]): Optional custom keys merged into the payload
    """

    user_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    title = serializers.CharField(max_length=200)
    body = serializers.CharField(max_length=2000)
    data = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)

    def to_push_request(self) -> PushRequest:
        data = self.validated_data
        return PushRequest(
            user_ids=tuple(dict.fromkeys(data['user_ids'])),
            title=data['title'],
            body=data['body'],
            data=dict(data.get('data') or {}),
        )


class DeviceTokenRegisterSerializer(serializers.Serializer):
    token = serializers.RegexField(r'^[0-9A-Fa-f]{16,200}$', max_length=200)
    platform = serializers.ChoiceField(choices=DevicePlatform.choices, default=DevicePlatform.IOS)


# =============================================================================
# Output Serializers
# =============================================================================

class DeviceTokenSerializer(serializers.ModelSerializer):

    class Meta:
        model = DeviceToken
        fields = ['id', 'token', 'platform', 'created_at', 'updated_at']
        read_only_fields = fields


class DeliveryReportSerializer(serializers.Serializer):
    sent = serializers.IntegerField()
    failed = serializers.IntegerField()
    total = serializers.IntegerField(required=False)
    message = serializers.CharField(required=False)
