from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError

from ticketing.domain.errors import InvalidIdentifierError
from ticketing.services import build_wallet_service
from ticketing.services.wallet_service import REFERRAL_DISCOUNT_PERCENTAGE


class Command(BaseCommand):
    help = "Issue a referral coupon to a user and print its code."

    def add_arguments(self, parser):
        parser.add_argument("user_id", help="UUID of the user receiving the coupon.")
        parser.add_argument(
            "--percentage",
            default=str(REFERRAL_DISCOUNT_PERCENTAGE),
            help="Discount percentage, between 0 and 100.",
        )

    def handle(self, *args, **options):
        try:
            percentage = Decimal(options["percentage"])
        except InvalidOperation:
            raise CommandError("--percentage must be a number") from None
        if not percentage.is_finite() or not 0 < percentage <= 100:
            raise CommandError("--percentage must be between 0 and 100")
        try:
            coupon = build_wallet_service().issue_referral_coupon(options["user_id"], percentage)
        except InvalidIdentifierError as exc:
            raise CommandError(f"Invalid user id: {options['user_id']}") from exc
        self.stdout.write(coupon.code)
