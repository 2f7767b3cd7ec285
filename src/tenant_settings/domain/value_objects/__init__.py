from tenant_settings.domain.value_objects.indexer_descriptor import IndexerDescriptor

__all__ = ["IndexerDescriptor"]
