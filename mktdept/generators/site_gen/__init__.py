from mktdept.generators.site_gen.generator import SiteGenerator
from mktdept.generators.site_gen.index import IndexExporter, IndexExportResult

__all__ = ["SiteGenerator", "IndexExporter", "IndexExportResult"]
