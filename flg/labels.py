"""Label classification: activation gate and group membership."""

from collections.abc import Iterable

from flg.models import LabelDecision
from flg.settings import GenerationSettings


def classify_labels(labels: Iterable[str], generation: GenerationSettings) -> LabelDecision:
    """Decide whether an issue is active and which configured groups it belongs to.

    Inactive issues carry no groups; they never reach the body parser.
    """
    label_set = frozenset(labels)
    if generation.label not in label_set:
        return LabelDecision(is_active=False)
    return LabelDecision(is_active=True, group_labels=label_set & generation.group_labels)
