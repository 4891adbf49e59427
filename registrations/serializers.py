from rest_framework import serializers

from courses.models import Course

from .models import PaymentProgress, Registration, RegistrationStatus


class RegistrationSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)

    class Meta:
        model = Registration
        fields = [
            "id", "course", "course_title", "status", "payment_status", "notes",
            "reviewed_at", "completed_at", "created_at", "updated_at",
        ]
        read_only_fields = fields


class AdminRegistrationSerializer(RegistrationSerializer):
    user_email = serializers.EmailField(source="user.email", read_only=True)
    user_name = serializers.CharField(source="user.name", read_only=True)

    class Meta(RegistrationSerializer.Meta):
        fields = RegistrationSerializer.Meta.fields + ["user", "user_email", "user_name", "reviewed_by"]
        read_only_fields = fields


class CreateRegistrationSerializer(serializers.Serializer):
    course_id = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_course_id(self, value):
        if not Course.objects.filter(pk=value, is_active=True).exists():
            raise serializers.ValidationError("Course not found.")
        return value


class SetStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=RegistrationStatus.choices)
    note = serializers.CharField(required=False, allow_blank=True, default="", max_length=2000)


class BulkSetStatusSerializer(SetStatusSerializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False, max_length=500)


class RegistrationFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=RegistrationStatus.choices, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentProgress.choices, required=False)
    course = serializers.IntegerField(required=False)
