"""
External collaborators for invoice documents.

Two narrow contracts are consumed by the invoice use cases:

- an invoice document generator: ``generate_invoice_pdf_buffer(aggregate) -> bytes``
  plus ``content_type`` and ``extension`` attributes;
- a storage adapter: ``put_object(path, data, mime_type) -> url``.

Concrete classes are selected by dotted path through the
``LAUNDRY_INVOICE_PDF_GENERATOR`` and ``LAUNDRY_INVOICE_STORAGE`` settings.
The defaults render a Django template and write through Django's storages
framework, so any configured storage backend can hold the documents.
"""

import logging

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import storages
from django.template.loader import render_to_string
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class TemplateInvoiceRenderer:
    """Renders the invoice aggregate through a Django template.

    Deployments that need real PDF output plug a renderer with the same
    interface through LAUNDRY_INVOICE_PDF_GENERATOR.
    """

    template_name = "laundry/invoice.txt"
    content_type = "text/plain; charset=utf-8"
    extension = "txt"

    def generate_invoice_pdf_buffer(self, aggregate):
        return render_to_string(self.template_name, aggregate).encode("utf-8")


class DjangoStorageAdapter:

    def __init__(self, alias=None):
        self.alias = alias or getattr(settings, "LAUNDRY_INVOICE_STORAGE_ALIAS", "default")

    def put_object(self, path, data, mime_type):
        storage = storages[self.alias]
        # Re-issuing overwrites the previous document at the same path.
        if storage.exists(path):
            storage.delete(path)
        content = ContentFile(data)
        content.content_type = mime_type
        name = storage.save(path, content)
        logger.info("Stored invoice document: path=%s bytes=%s", name, len(data))
        return storage.url(name)


def get_invoice_pdf_generator():
    return import_string(settings.LAUNDRY_INVOICE_PDF_GENERATOR)()


def get_storage_adapter():
    return import_string(settings.LAUNDRY_INVOICE_STORAGE)()
