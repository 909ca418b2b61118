import logging
import os

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from garage_core.errors import ServiceError

logger = logging.getLogger(__name__)


class InvoiceStorage:
    """Where rendered invoice PDFs live: ``<folder>/<invoice_id>.pdf``."""

    def __init__(self, folder='invoices'):
        self.folder = folder

    def object_name(self, invoice_id):
        return f"{self.folder}/{invoice_id}.pdf"

    def upload(self, invoice_id, pdf_bytes):
        """Store the PDF and return its URL."""
        raise NotImplementedError

    def download(self, invoice_id):
        """PDF bytes, or None when nothing is stored."""
        raise NotImplementedError

    def delete(self, invoice_id):
        raise NotImplementedError


class S3InvoiceStorage(InvoiceStorage):
    def __init__(self, bucket, region, access_key=None, secret_key=None, custom_domain=None, folder='invoices'):
        super().__init__(folder)
        self.bucket = bucket
        self.region = region
        self.custom_domain = custom_domain or f"{bucket}.s3.{region}.amazonaws.com"
        self.s3 = boto3.client(
            's3',
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region
        )

    def upload(self, invoice_id, pdf_bytes):
        object_name = self.object_name(invoice_id)
        try:
            self.s3.put_object(
                Bucket=self.bucket, Key=object_name, Body=pdf_bytes, ContentType='application/pdf'
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload of %s failed: %s", object_name, e)
            raise ServiceError(str(e) or "Failed to upload invoice PDF") from e
        return f"https://{self.custom_domain}/{object_name}"

    def download(self, invoice_id):
        try:
            response = self.s3.get_object(Bucket=self.bucket, Key=self.object_name(invoice_id))
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                return None
            logger.error("S3 download of invoice %s failed: %s", invoice_id, e)
            raise ServiceError(str(e) or "Failed to download invoice PDF") from e
        return response['Body'].read()

    def delete(self, invoice_id):
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=self.object_name(invoice_id))
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 delete of invoice %s failed: %s", invoice_id, e)
            raise ServiceError(str(e) or "Failed to delete invoice PDF") from e


class LocalInvoiceStorage(InvoiceStorage):
    """Files under LOCAL_STORAGE_FOLDER, served back through the API."""

    def __init__(self, root, folder='invoices', base_url='/invoices'):
        super().__init__(folder)
        self.root = root
        self.base_url = base_url.rstrip('/')

    def path_for(self, invoice_id):
        return os.path.join(self.root, self.folder, f"{invoice_id}.pdf")

    def upload(self, invoice_id, pdf_bytes):
        path = self.path_for(invoice_id)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as f:
                f.write(pdf_bytes)
        except OSError as e:
            logger.error("Saving %s failed: %s", path, e)
            raise ServiceError("Failed to upload invoice PDF") from e
        logger.info("PDF saved to: %s", path)
        return f"{self.base_url}/{invoice_id}/pdf"

    def download(self, invoice_id):
        path = self.path_for(invoice_id)
        if not os.path.exists(path):
            return None
        with open(path, 'rb') as f:
            return f.read()

    def delete(self, invoice_id):
        path = self.path_for(invoice_id)
        if os.path.exists(path):
            os.remove(path)


def build_invoice_storage(config):
    folder = config.get('INVOICE_STORAGE_PATH') or 'invoices'
    if config.get('AWS_S3_BUCKET'):
        return S3InvoiceStorage(
            bucket=config['AWS_S3_BUCKET'],
            region=config.get('AWS_S3_REGION'),
            access_key=config.get('AWS_ACCESS_KEY_ID'),
            secret_key=config.get('AWS_SECRET_ACCESS_KEY'),
            custom_domain=config.get('AWS_S3_CUSTOM_DOMAIN'),
            folder=folder,
        )
    return LocalInvoiceStorage(config['LOCAL_STORAGE_FOLDER'], folder=folder)
