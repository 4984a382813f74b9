from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from inventory.permissions import ROLES


class Command(BaseCommand):
    help = "Create default groups for the restaurant inventory"

    def handle(self, *args, **options):
        for g in ROLES:
            Group.objects.get_or_create(name=g)
        self.stdout.write(self.style.SUCCESS("Groups created: " + ", ".join(ROLES)))
