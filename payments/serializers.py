from decimal import Decimal

from rest_framework import serializers

from courses.models import Course

from .models import InstallmentPlan, PaymentRecord, PaymentType, PlanCadence, PaymentStatus, PlanStatus


class PaymentRecordSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)

    class Meta:
        model = PaymentRecord
        fields = [
            "id", "reference", "course", "course_title", "installment_plan",
            "amount", "currency", "payment_type", "status", "payment_method",
            "installment_number", "total_installments", "authorization_url",
            "paid_at", "created_at", "updated_at",
        ]
        read_only_fields = fields


class AdminPaymentRecordSerializer(PaymentRecordSerializer):
    user_email = serializers.EmailField(source="user.email", read_only=True)
    user_name = serializers.CharField(source="user.name", read_only=True)

    class Meta(PaymentRecordSerializer.Meta):
        fields = PaymentRecordSerializer.Meta.fields + ["user", "user_email", "user_name", "gateway"]
        read_only_fields = fields


class InstallmentPlanSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source="course.title", read_only=True)
    remaining_installments = serializers.SerializerMethodField()

    class Meta:
        model = InstallmentPlan
        fields = [
            "id", "course", "course_title", "total_course_fee", "application_fee_amount",
            "application_fee_paid", "total_installments", "installment_amount",
            "paid_installments", "remaining_installments", "remaining_balance",
            "next_due_date", "payment_plan", "status", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_remaining_installments(self, obj) -> int:
        return obj.total_installments - obj.paid_installments


class AdminInstallmentPlanSerializer(InstallmentPlanSerializer):
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta(InstallmentPlanSerializer.Meta):
        fields = InstallmentPlanSerializer.Meta.fields + ["user", "user_email", "application_fee_reference"]
        read_only_fields = fields


class CreateInstallmentPlanSerializer(serializers.Serializer):
    course_id = serializers.IntegerField()
    total_installments = serializers.IntegerField(min_value=1)
    payment_plan = serializers.ChoiceField(choices=PlanCadence.choices, default=PlanCadence.MONTHLY)

    def validate(self, attrs):
        course = Course.objects.filter(pk=attrs["course_id"], is_active=True).first()
        if course is None:
            raise serializers.ValidationError({"course_id": "Course not found."})
        if not course.allows_installments(attrs["total_installments"]):
            raise serializers.ValidationError(
                {"total_installments": f"This course allows at most {course.max_installments} installments."}
                if course.offers_installments else
                {"course_id": "This course cannot be paid in installments."}
            )
        attrs["course"] = course
        return attrs


class InitializePaymentSerializer(serializers.Serializer):
    """
    The amount is never taken from the client: it comes from the course
    (application or full fee) or from the active plan (installment).
    """
    course_id = serializers.IntegerField()
    payment_type = serializers.ChoiceField(choices=PaymentType.choices)
    email = serializers.EmailField(required=False)

    def validate(self, attrs):
        course = Course.objects.filter(pk=attrs["course_id"], is_active=True).first()
        if course is None:
            raise serializers.ValidationError({"course_id": "Course not found."})
        if attrs["payment_type"] == PaymentType.APPLICATION_FEE and course.application_fee <= Decimal("0"):
            raise serializers.ValidationError({"payment_type": "This course has no application fee."})
        attrs["course"] = course
        return attrs


class PaymentFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    payment_type = serializers.ChoiceField(choices=PaymentType.choices, required=False)
    user = serializers.IntegerField(required=False)
    course = serializers.IntegerField(required=False)
    reference = serializers.CharField(required=False)
    created_after = serializers.DateField(required=False)
    created_before = serializers.DateField(required=False)
    ordering = serializers.CharField(required=False)


class PlanFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PlanStatus.choices, required=False)
    payment_plan = serializers.ChoiceField(choices=PlanCadence.choices, required=False)
    user = serializers.IntegerField(required=False)
    course = serializers.IntegerField(required=False)


class StatsFilterSerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
