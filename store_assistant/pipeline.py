import logging
from typing import Callable, List, Optional, Tuple

from .action_builder import materialize, normalize_intent
from .action_validator import validate_reply
from .business_rules import FALLBACK_PRODUCT_KEYWORDS, BusinessRules
from .config import Settings
from .context_builder import SearchContext, build_search_context, filter_history
from .credentials import CredentialStore
from .exceptions import ConfigurationError, GenerationUnavailable, UpstreamUnavailable
from .llm_gateway import LLMGateway, build_messages, render_snapshot
from .models import (
    ActionIntent,
    CatalogProduct,
    CatalogSnapshot,
    ChatRequest,
    ChatResponse,
    StoreCredentials,
    Variation,
)
from .response_parser import parse_model_output
from .woocommerce_client import WooCommerceClient, search_first

logger = logging.getLogger("store_assistant.pipeline")

NOT_CONNECTED_MESSAGE = "❌ WooCommerce is not connected. Connect the store in the integration settings."
GENERATION_DOWN_MESSAGE = "⚠️ The AI assistant is temporarily unavailable. Please try again shortly."

ClientFactory = Callable[[StoreCredentials, float], WooCommerceClient]


class AssistantPipeline:
    """
    Instruction -> search -> snapshot -> model -> recovery -> materialize -> validate.
    Every value is passed explicitly between stages; nothing is kept between requests.
    """

    def __init__(
        self,
        settings: Settings,
        credential_store: CredentialStore,
        gateway: LLMGateway,
        client_factory: ClientFactory = WooCommerceClient,
    ):
        self.settings = settings
        self.credential_store = credential_store
        self.gateway = gateway
        self.client_factory = client_factory

    # ---------------------------------------------------------
    # Catalog
    # ---------------------------------------------------------
    def build_snapshot(
        self, client: WooCommerceClient, context: SearchContext, instruction: str
    ) -> CatalogSnapshot:
        logger.info("🔎 Search queries: %s", context.queries)
        query, hits = search_first(client, context.queries, self.settings.search_page_size)
        snapshot = CatalogSnapshot(query=query, hits=hits, searched_queries=context.queries)
        if not hits:
            return snapshot

        chosen = BusinessRules.choose_product(hits, instruction, context.model_tokens)
        logger.info("📊 Selected product: %s (ID: %s)", chosen.name, chosen.id)
        try:
            product, variations, loaded = client.product_with_variations(
                chosen.id, self.settings.variations_page_size
            )
        except UpstreamUnavailable as e:
            logger.error("❌ Error getting product details: %s", e)
            return snapshot
        return snapshot.model_copy(
            update={"product": product, "variations": variations, "variations_loaded": loaded}
        )

    def resolve_product(
        self,
        client: WooCommerceClient,
        snapshot: CatalogSnapshot,
        intent: ActionIntent,
        instruction: str,
    ) -> Optional[Tuple[CatalogProduct, List[Variation]]]:
        """Snapshot product first, then the model-declared name, then fixed keywords."""
        if snapshot.product is not None:
            return snapshot.product, snapshot.variations

        names = [intent.product_name] if intent.product_name else []
        if intent.kind in ('price_update', 'convert_to_sale'):
            lowered = instruction.lower()
            names += [k for k in FALLBACK_PRODUCT_KEYWORDS if k in lowered]

        for name in names:
            logger.info("🔎 No product loaded, searching for: %r", name)
            _, hits = search_first(client, [name], self.settings.search_page_size)
            if not hits:
                continue
            try:
                product, variations, _ = client.product_with_variations(
                    hits[0].id, self.settings.variations_page_size
                )
            except UpstreamUnavailable as e:
                logger.error("❌ Error loading %r: %s", name, e)
                continue
            return product, variations
        return None

    # ---------------------------------------------------------
    # Request handling
    # ---------------------------------------------------------
    def handle(self, request: ChatRequest) -> ChatResponse:
        logger.info("📨 Message received: %s", request.message)
        try:
            credentials = self.credential_store.resolve(request.business_id)
        except ConfigurationError as e:
            logger.warning("⚠️ %s (business %s)", e, request.business_id)
            return ChatResponse(message=NOT_CONNECTED_MESSAGE)

        client = self.client_factory(credentials, self.settings.catalog_timeout)
        context = build_search_context(
            request.message,
            request.history,
            self.settings.history_window,
            self.settings.short_message_threshold,
        )
        snapshot = self.build_snapshot(client, context, request.message)
        snapshot_text = render_snapshot(snapshot)

        if not self.gateway.is_configured:
            return ChatResponse(message=(
                f"🔍 Searched for \"{snapshot.query or request.message}\"\n\n"
                f"{snapshot_text.strip() or 'No matching products found.'}\n\n"
                "⚠️ Note: the AI backend is not configured. Set GROQ_API_KEY to enable the assistant."
            ))

        history = filter_history(request.history, self.settings.history_window)
        try:
            raw_output = self.gateway.generate(build_messages(history, request.message, snapshot_text))
        except GenerationUnavailable as e:
            logger.error("❌ %s", e)
            summary = snapshot_text.strip()
            return ChatResponse(message=GENERATION_DOWN_MESSAGE + (f"\n\n{summary}" if summary else ""))

        reply = parse_model_output(raw_output)
        logger.info("📋 Parsed model output via %s strategy", reply.strategy)
        message, action = reply.message, None

        intent = normalize_intent(reply.action)
        if intent is not None and intent.kind == 'unsupported':
            logger.info("⚠️ Ignoring unknown action type: %s", intent.declared_type or "(none)")
        elif intent is not None:
            resolved = self.resolve_product(client, snapshot, intent, request.message)
            if resolved is None:
                logger.warning("⚠️ No product found for %s", intent.kind)
                searched = ", ".join(snapshot.searched_queries[:3])
                note = f"⚠️ No products found{' for: ' + searched if searched else ''}."
                message = f"{message}\n\n{note}" if message.strip() else note
            else:
                product, variations = resolved
                built = materialize(
                    intent, product, variations, request.message, self.settings.default_sale_increase
                )
                if built is not None:
                    action, message = built.action, built.message
                    logger.info("✅ Built %s action for %s", action.type, product.name)
                else:
                    logger.info("⚠️ Nothing to change for %s on %s", intent.kind, product.name)

        return validate_reply(message, action)
