import logging

from openai import OpenAI, OpenAIError

from ..config import SENTINEL_RANKING_VALUE
from ..database import DocumentStore
from ..errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

RANKINGS_PLACEHOLDER = "{rankings}"


def build_vocabulary(rankings: list[dict], delimiter: str = ","):
    """
    Join the ranking names offered to the model.

    Args:
        rankings (list[dict]): Ranking documents.
        delimiter (str): Separator placed between names.

    Returns:
        str: Names of every ranking except the sentinel entry, in store order.
    """
    delimited = ""
    for ranking in rankings:
        if ranking.get("ranking_value") != SENTINEL_RANKING_VALUE:
            delimited += f"{ranking.get('ranking_name', '')}{delimiter}"
    return delimited.strip(delimiter)


def build_prompt(template: str, vocabulary: str, review: str):
    """
    Substitute the vocabulary into the template and append the review.

    Args:
        template (str): Prompt text containing a ``{rankings}`` placeholder.
        vocabulary (str): Output of :func:`build_vocabulary`.
        review (str): Admin review to classify.

    Returns:
        str: Prompt sent to the model.
    """
    base_prompt = template.replace(RANKINGS_PLACEHOLDER, vocabulary, 1)
    return f"{base_prompt}\n{review}"


def match_ranking_value(rankings: list[dict], ranking_name: str):
    """
    Map a category name back to its numeric value.

    Args:
        rankings (list[dict]): Ranking documents.
        ranking_name (str): Name returned by the model.

    Returns:
        int | None: Value of the first exact match, None when nothing matches.
    """
    for ranking in rankings:
        if ranking.get("ranking_name") == ranking_name:
            return ranking.get("ranking_value")
    return None


class RankingClassifier:
    """
    Turns a free-text review into a ``(ranking_name, ranking_value)`` pair.

    Args:
        store (DocumentStore): Source of the ranking definitions.
        api_key (str | None): OpenAI credential.
        prompt_template (str | None): Template with a ``{rankings}`` placeholder.
        model (str): Chat model name.
        timeout_seconds (float): Budget for the completion request.
        client (OpenAI | None): Pre-built client; one is created per call otherwise.
    """

    def __init__(self, store: DocumentStore, api_key: str | None, prompt_template: str | None,
                 model: str, timeout_seconds: float = 100, client: OpenAI | None = None):
        self.store = store
        self.api_key = api_key
        self.prompt_template = prompt_template
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.client = client

    def load_rankings(self):
        with self.store.operation("Failed to load rankings"):
            return self.store.find_all(self.store.rankings)

    def get_client(self):
        if self.client is not None:
            return self.client
        return OpenAI(api_key=self.api_key, timeout=self.timeout_seconds, max_retries=0)

    def complete(self, prompt: str):
        """
        Send the prompt to the completion service.

        Args:
            prompt (str): Assembled prompt.

        Returns:
            str: Model output with surrounding whitespace removed.

        Raises:
            UpstreamError: The API call failed.
        """
        try:
            response = self.get_client().chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as exc:
            logger.error("Ranking completion failed: %s", exc)
            raise UpstreamError(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()

    def classify(self, review: str):
        """
        Classify a review against the stored rankings.

        Args:
            review (str): Admin review text.

        Returns:
            tuple[str, int]: Ranking name from the model and its value (0 when
            the name is not a known ranking).

        Raises:
            ConfigurationError: The API key or prompt template is missing.
            UpstreamError: The completion service failed.
        """
        rankings = self.load_rankings()
        vocabulary = build_vocabulary(rankings)

        if not self.api_key:
            raise ConfigurationError("could not read OPENAI_API_KEY")
        if not self.prompt_template:
            raise ConfigurationError("could not read BASE_PROMPT_TEMPLATE")

        ranking_name = self.complete(build_prompt(self.prompt_template, vocabulary, review))

        ranking_value = match_ranking_value(rankings, ranking_name)
        if ranking_value is None:
            logger.warning("Model returned unknown ranking %r, storing value 0", ranking_name)
            ranking_value = 0

        return ranking_name, ranking_value
