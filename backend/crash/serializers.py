from rest_framework import serializers

from .models import Wager


class PlaceWagerIn(serializers.Serializer):
    # minor units
    bet_amount = serializers.IntegerField()


class CashOutIn(serializers.Serializer):
    # raw values; the engine parses both and owns the fraud check
    wager_id = serializers.CharField(max_length=64)
    claimed_multiplier = serializers.CharField()


class CrashIn(serializers.Serializer):
    wager_id = serializers.CharField(max_length=64)


class WagerSerializer(serializers.ModelSerializer):
    wager_id = serializers.UUIDField(source="id", read_only=True)

    class Meta:
        model = Wager
        fields = [
            "wager_id",
            "bet_amount",
            "status",
            "start_time",
            "final_multiplier",
            "payout",
            "settled_at",
        ]
