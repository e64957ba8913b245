"""
Serializers for the user API View.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from access.errors import TransitionError
from access.roles import RoleLevel
from users import services
from .workflows import AccountStatus


class UserNestedSerializer(serializers.ModelSerializer):
    """Compact representation for embedding in other objects."""

    class Meta:
        model = get_user_model()
        fields = ["id", "email", "full_name"]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """Serializer for self-registration and the 'me' endpoint."""

    customer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = get_user_model()
        fields = [
            "id",
            "email",
            "password",
            "full_name",
            "status",
            "role_level",
            "customer_id",
        ]
        read_only_fields = ["id", "status", "role_level"]
        extra_kwargs = {"password": {"write_only": True, "min_length": 5}}

    def create(self, validated_data):
        """Register a new account, pending verification."""
        return services.register_account(**validated_data)

    def update(self, instance, validated_data):
        """Update a user, setting the password correctly and return it."""
        password = validated_data.pop("password", None)
        user = super().update(instance, validated_data)

        if password:
            user.set_password(password)
            user.save()

        return user


class AuthTokenSerializer(serializers.Serializer):
    """Serializer for the user auth token."""

    email = serializers.EmailField()
    password = serializers.CharField(
        style={"input_type": "password"},
        trim_whitespace=False,
    )

    def validate(self, attrs):
        """Validate and authenticate the user."""
        try:
            user = services.authenticate_account(
                email=attrs.get("email"), password=attrs.get("password")
            )
        except TransitionError as e:
            raise serializers.ValidationError(str(e), code="authorization")

        attrs["user"] = user
        return attrs


class AccountSerializer(serializers.ModelSerializer):
    """Account snapshot as exposed to the rules engine."""

    customer_id = serializers.IntegerField(read_only=True)
    assigned_sales_rep_id = serializers.IntegerField(read_only=True)
    role_name = serializers.CharField(read_only=True)
    status_label = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = [
            "id",
            "email",
            "full_name",
            "role_level",
            "role_name",
            "status",
            "status_label",
            "customer_id",
            "assigned_sales_rep_id",
            "failed_login_attempts",
            "status_changed_at",
            "status_reason",
        ]
        read_only_fields = fields

    def get_status_label(self, obj) -> str:
        return AccountStatus(obj.status).label


class AccountStatusChangeSerializer(serializers.Serializer):
    """Input for POST /accounts/{id}/status/."""

    new_status = serializers.ChoiceField(choices=AccountStatus.choices())
    expected_status = serializers.ChoiceField(
        choices=AccountStatus.choices(), required=False
    )
    reason = serializers.CharField(
        required=False, allow_blank=True, max_length=500
    )
    metadata = serializers.DictField(required=False)


class AccountRoleChangeSerializer(serializers.Serializer):
    """Input for POST /accounts/{id}/role/."""

    role_level = serializers.IntegerField(
        min_value=RoleLevel.CUSTOMER, max_value=RoleLevel.SUPER_ADMIN
    )
    expected_role_level = serializers.IntegerField(required=False)
