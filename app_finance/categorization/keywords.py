"""
Keyword-based category suggestions.

DESIGN DECISION: We use simple keyword matching as the offline fallback
rather than a local model because:
1. Bill and purchase names are short and dominated by brand names
2. It is deterministic and testable
3. It works without network or API keys

Matching is case- and accent-insensitive. A keyword scores its length,
plus a bonus when it appears as a whole word, so "plano de saude" beats
"saude" and "luz" alone beats "luz" inside another word.
"""

from typing import Optional

from app_finance.models.finance import (
    Category,
    FixedBillCategory,
    SuggestionConfidence,
    fold,
)
from app_finance.models.suggestion import FixedBillSuggestion, TransactionSuggestion


WHOLE_WORD_BONUS = 5

# Streaming/SaaS is a subscription, leisure in person is entertainment
FIXED_BILL_KEYWORDS: dict[FixedBillCategory, list[str]] = {
    FixedBillCategory.HOUSING: [
        "aluguel", "condomínio", "iptu", "casa", "apartamento",
        "moradia", "hipoteca", "financiamento imobiliário",
        "rent", "mortgage", "imóvel",
    ],
    FixedBillCategory.UTILITIES: [
        "luz", "água", "energia", "eletricidade", "gás",
        "enel", "cemig", "light", "cpfl", "celesc", "copel", "sabesp",
        "sanepar", "comgas", "naturgy", "equatorial", "neoenergia", "energisa",
    ],
    FixedBillCategory.HEALTH: [
        "plano de saúde", "saúde", "convênio médico",
        "unimed", "amil", "bradesco saúde", "sulamerica saude", "hapvida",
        "notredame", "dental", "odontológico", "odontoprev", "farmácia", "drogaria",
        "academia", "gym", "smartfit", "smart fit", "bluefit", "bodytech",
    ],
    FixedBillCategory.EDUCATION: [
        "faculdade", "universidade", "escola", "curso", "mensalidade escolar",
        "colégio", "educação", "material escolar", "inglês", "idioma",
        "pós-graduação", "mba", "duolingo", "alura", "udemy", "coursera",
        "wizard", "ccaa", "fisk",
    ],
    FixedBillCategory.TRANSPORT: [
        "carro", "moto", "veículo", "combustível", "gasolina", "etanol",
        "ipva", "licenciamento", "seguro auto", "estacionamento", "pedágio",
        "transporte", "metrô", "ônibus", "bilhete único",
    ],
    FixedBillCategory.SUBSCRIPTION: [
        # video
        "netflix", "amazon prime", "prime video", "disney", "disney+",
        "hbo", "hbo max", "max", "globoplay", "apple tv", "paramount",
        "star+", "starplus", "crunchyroll", "mubi", "telecine", "youtube premium",
        # music
        "spotify", "deezer", "apple music", "tidal", "amazon music",
        # games
        "xbox game pass", "gamepass", "playstation plus", "ps plus",
        "nintendo online", "geforce now", "steam",
        # software
        "microsoft 365", "office 365", "adobe", "creative cloud",
        "dropbox", "icloud", "google one", "notion", "canva", "figma",
        "chatgpt", "openai", "github", "copilot",
        "linkedin", "tinder", "bumble", "rappi prime", "ifood",
        "assinatura", "streaming", "mensalidade app",
    ],
    FixedBillCategory.ENTERTAINMENT: [
        "cinema", "teatro", "show", "ingresso", "evento",
        "clube", "parque", "lazer", "diversão",
        "bar", "restaurante", "balada",
    ],
    FixedBillCategory.INSURANCE: [
        "seguro", "seguradora", "porto seguro", "bradesco seguros", "sulamerica seguros",
        "itaú seguros", "liberty", "allianz", "mapfre", "tokio marine",
        "seguro de vida", "seguro residencial", "proteção", "previdência", "prev",
    ],
    FixedBillCategory.LOAN: [
        "empréstimo", "financiamento", "crédito", "parcela", "consignado",
        "dívida", "prestação",
    ],
}

# Telecom bills are utilities
TELECOM_KEYWORDS: list[str] = [
    "internet", "telefone", "celular", "móvel", "fibra",
    "vivo", "claro", "tim", "oi", "net", "sky", "brisanet", "algar",
]

# Matched against the user's own categories by name
TRANSACTION_KEYWORDS: dict[str, list[str]] = {
    "Alimentação": [
        "mercado", "supermercado", "padaria", "açougue", "hortifruti",
        "restaurante", "lanchonete", "ifood", "rappi", "uber eats",
        "mcdonald", "burger king", "subway", "pizza", "sushi",
        "café", "cafeteria", "starbucks", "comida", "almoço", "jantar",
    ],
    "Transporte": [
        "uber", "99", "taxi", "combustível", "gasolina", "etanol",
        "estacionamento", "pedágio", "ônibus", "metrô", "trem",
        "passagem", "bilhete", "posto", "shell", "ipiranga", "br",
    ],
    "Compras": [
        "shopping", "loja", "magazine", "americanas", "casas bahia",
        "amazon", "mercado livre", "shopee", "aliexpress", "shein",
        "roupa", "calçado", "tênis", "sapato", "camisa", "calça",
    ],
    "Lazer": [
        "cinema", "teatro", "show", "ingresso", "netflix", "spotify",
        "disney", "hbo", "amazon prime", "streaming", "jogo", "game",
        "ps5", "xbox", "nintendo", "bar", "balada", "festa",
    ],
    "Saúde": [
        "farmácia", "drogaria", "remédio", "medicamento", "consulta",
        "médico", "dentista", "hospital", "clínica", "exame",
        "academia", "gym", "smartfit", "crossfit",
    ],
    "Educação": [
        "curso", "livro", "escola", "faculdade", "mensalidade",
        "material", "apostila", "udemy", "alura", "coursera",
    ],
    "Casa": [
        "aluguel", "condomínio", "luz", "água", "gás", "internet",
        "móveis", "decoração", "reforma", "manutenção", "limpeza",
    ],
    "Serviços": [
        "celular", "telefone", "plano", "assinatura", "mensalidade",
        "seguro", "banco", "tarifa", "anuidade",
    ],
}


def keyword_score(text: str, keyword: str) -> int:
    """
    Score of ``keyword`` in ``text``; 0 when absent.

    Both arguments must already be folded.
    """
    if keyword not in text:
        return 0
    score = len(keyword)
    if (
        text == keyword
        or text.startswith(keyword + " ")
        or text.endswith(" " + keyword)
        or f" {keyword} " in text
    ):
        score += WHOLE_WORD_BONUS
    return score


def confidence_for_score(score: int) -> SuggestionConfidence:
    if score >= 10:
        return SuggestionConfidence.HIGH
    if score >= 5:
        return SuggestionConfidence.MEDIUM
    if score > 0:
        return SuggestionConfidence.LOW
    return SuggestionConfidence.NONE


def _fixed_bill_tables():
    yield from FIXED_BILL_KEYWORDS.items()
    yield FixedBillCategory.UTILITIES, TELECOM_KEYWORDS


def _best_keyword(text: str, keywords: list[str]) -> tuple[int, Optional[str]]:
    best_score, best_keyword = 0, None
    for keyword in keywords:
        score = keyword_score(text, fold(keyword))
        if score > best_score:
            best_score, best_keyword = score, keyword
    return best_score, best_keyword


def suggest_fixed_bill_category(bill_name: str) -> FixedBillSuggestion:
    """
    Best predefined category for a bill name.

    Falls back to OTHER with NONE confidence when nothing matches.
    """
    text = fold(bill_name.strip())
    best = FixedBillSuggestion(
        category=FixedBillCategory.OTHER,
        confidence=SuggestionConfidence.NONE,
    )
    highest = 0
    for category, keywords in _fixed_bill_tables():
        score, keyword = _best_keyword(text, keywords)
        if score > highest:
            highest = score
            best = FixedBillSuggestion(
                category=category,
                confidence=confidence_for_score(score),
                matched_keyword=keyword,
            )
    return best


def all_fixed_bill_suggestions(bill_name: str) -> list[FixedBillSuggestion]:
    """Every matching category, strongest first."""
    text = fold(bill_name.strip())
    scored: dict[FixedBillCategory, tuple[int, str]] = {}
    for category, keywords in _fixed_bill_tables():
        score, keyword = _best_keyword(text, keywords)
        if score and score > scored.get(category, (0, ""))[0]:
            scored[category] = (score, keyword)

    ranked = sorted(scored.items(), key=lambda item: item[1][0], reverse=True)
    return [
        FixedBillSuggestion(
            category=category,
            confidence=confidence_for_score(score),
            matched_keyword=keyword,
        )
        for category, (score, keyword) in ranked
    ]


def match_user_category(name: str, categories: list[Category]) -> Optional[Category]:
    """A user category whose name contains ``name`` or is contained in it."""
    wanted = fold(name)
    for category in categories:
        have = fold(category.name)
        if wanted in have or have in wanted:
            return category
    return None


def suggest_transaction_category(
    description: str,
    categories: list[Category],
) -> TransactionSuggestion:
    """
    Suggest one of the user's categories for a purchase description.

    When the best keyword group has no counterpart among ``categories``
    the group name is proposed as a new category.
    """
    text = fold(description.strip())
    highest, best_group, best_keyword = 0, None, None
    for group, keywords in TRANSACTION_KEYWORDS.items():
        score, keyword = _best_keyword(text, keywords)
        if score > highest:
            highest, best_group, best_keyword = score, group, keyword

    existing = match_user_category(best_group, categories) if best_group else None
    return TransactionSuggestion(
        existing_category=existing,
        confidence=confidence_for_score(highest),
        matched_keyword=best_keyword,
        custom_category_name=best_group if existing is None else None,
    )
