from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Property, Tenant, Guarantor, Document
from .repository import invalidate_properties_cache


@receiver(post_save, sender=Property)
@receiver(post_save, sender=Tenant)
@receiver(post_save, sender=Guarantor)
@receiver(post_save, sender=Document)
@receiver(post_delete, sender=Property)
@receiver(post_delete, sender=Tenant)
@receiver(post_delete, sender=Guarantor)
@receiver(post_delete, sender=Document)
def drop_properties_listing(sender, **kwargs):
    invalidate_properties_cache()
