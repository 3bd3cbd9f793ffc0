from .importer import AssetImporter, ImportRequest

__all__ = ['AssetImporter', 'ImportRequest']
