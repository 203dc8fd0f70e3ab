"""File-backed signal source: products from CSV, survey responses from JSON.

Products CSV columns: ``id,name,category`` (``category`` may be blank or absent).
A category is a key such as ``TECH_SAAS`` or a catalogue display name.
Responses JSON: ``{"responses": [{"productId", "submittedAt", "answers"}, ...]}``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing_extensions import override

from ..domain.categories import category_key
from ..domain.models import Product, SurveyResponse
from ..exceptions import JsonObjectExpectedError, SignalSourceError
from ..infrastructure.io.validation import IncomingDataError, parse_survey_responses
from ..observability import get_logger
from ..protocols import FileSystem, SignalSource

logger = get_logger("product_ranking_pipeline.signal_source")

PRODUCT_REQUIRED_COLUMNS = frozenset({"id", "name"})


class FileSignalSource(SignalSource):
    def __init__(self, *, products_path: Path, responses_path: Path, fs: FileSystem) -> None:
        self.products_path = Path(products_path)
        self.responses_path = Path(responses_path)
        self.fs = fs

    @override
    def load_products(self) -> Sequence[Product]:
        if not self.fs.exists(self.products_path):
            raise SignalSourceError(str(self.products_path), "file not found")
        df = self.fs.read_csv(self.products_path)
        missing = PRODUCT_REQUIRED_COLUMNS - set(df.columns)
        if missing:
            raise SignalSourceError(
                str(self.products_path), f"missing columns: {', '.join(sorted(missing))}"
            )
        has_category = "category" in df.columns
        products: list[Product] = []
        for row in df.to_dict(orient="records"):
            product_id = str(row["id"]).strip()
            if not product_id:
                logger.warning("Skipping product row without an id in %s", self.products_path)
                continue
            raw_category = str(row["category"]).strip() if has_category else ""
            category = category_key(raw_category) if raw_category else None
            if raw_category and category is None:
                raise SignalSourceError(
                    str(self.products_path),
                    f"product {product_id} has invalid category {raw_category!r}",
                )
            products.append(
                Product(id=product_id, name=str(row["name"]).strip(), category=category)
            )
        logger.info("Loaded %d products from %s", len(products), self.products_path)
        return products

    @override
    def load_responses(self) -> Mapping[str, Sequence[SurveyResponse]]:
        if not self.fs.exists(self.responses_path):
            raise SignalSourceError(str(self.responses_path), "file not found")
        try:
            responses = parse_survey_responses(self.fs.read_json(self.responses_path))
        except (IncomingDataError, JsonObjectExpectedError) as exc:
            raise SignalSourceError(str(self.responses_path), str(exc)) from exc
        grouped: defaultdict[str, list[SurveyResponse]] = defaultdict(list)
        for response in responses:
            grouped[response.product_id].append(response)
        logger.info(
            "Loaded %d responses for %d products from %s",
            len(responses),
            len(grouped),
            self.responses_path,
        )
        return dict(grouped)
