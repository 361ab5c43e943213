"""Deals module processor.

Stores one term template per (organization, source document). New deals are
seeded from it later; nothing here creates a deal.
"""

from lifecycle.processors.processor_base import ModuleProcessor
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage, DealsCascade
from lifecycle.pydantic_models.results import DealsResult
from lifecycle.pydantic_models.run_config import RunConfig


class DealsProcessor(ModuleProcessor[DealsResult]):
    name = "deals"
    result_type = DealsResult

    def select(self, cascade: CascadeDataPackage) -> DealsCascade | None:
        return cascade.deals

    async def _write(
        self,
        data: DealsCascade,
        cascade: CascadeDataPackage,
        config: RunConfig,
        result: DealsResult,
    ) -> None:
        await self.store.upsert_term_template({
            **self.base_record(config),
            "template_name": f"From {config.document_id}",
            "categories": list(data.categories),
            "terms": [
                {**t.model_dump(mode="json"), "source_document_id": config.document_id}
                for t in data.terms
            ],
            "defined_terms": [d.model_dump(mode="json") for d in data.defined_terms],
        })
        result.terms_populated = len(data.terms)
        result.categories_created = len(data.categories)
        result.base_terms_from_facility = len(data.terms)
        result.defined_terms_linked = len(data.defined_terms)
