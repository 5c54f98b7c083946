"""
High-Level Translation API.

Provides a simple interface for translation that handles:
- Tokenization
- Decoding (greedy or beam search)
- Detokenization
- Batch translation
"""

from typing import Any, Callable, Dict, List, Optional, Union

import torch
from tqdm import tqdm

from ..config import DecodingConfig
from ..scorers import RecurrentScorer, TransformerScorer
from .beam_search import BeamSearchDecoder
from .greedy import greedy_decode


class Translator:
    """High-level translator interface.

    Wraps a scorer factory with tokenization and decoding for easy
    translation of text.

    Args:
        scorer_factory: Builds a scorer for a list of source token IDs.
            Scorers may expose ``initial_step_state``.
        tokenizer: Object with ``encode(text) -> List[int]`` and
            ``decode(ids, skip_special_tokens=True) -> str``.
        config: Decoding configuration. Special token IDs are taken from
            the tokenizer when it has ``bos_id``/``eos_id``.
        verbose: Print decoding progress.
    """

    def __init__(
        self,
        scorer_factory: Callable[[List[int]], Callable],
        tokenizer,
        config: Optional[DecodingConfig] = None,
        verbose: bool = False
    ):
        self.scorer_factory = scorer_factory
        self.tokenizer = tokenizer
        self.config = config or DecodingConfig()
        self.verbose = verbose

        # Cache token IDs
        self.bos_id = getattr(tokenizer, "bos_id", self.config.bos_id)
        self.eos_id = getattr(tokenizer, "eos_id", self.config.eos_id)

    def translate(
        self,
        text: str,
        return_scores: bool = False
    ) -> Union[str, Dict[str, Any], List[Dict[str, Any]]]:
        """Translate a single text.

        Args:
            text: Source text to translate.
            return_scores: Whether to return translation scores.

        Returns:
            Translated text, a dict with text and scores if
            return_scores=True, or a list of such dicts if n_best > 1.
        """
        candidates = self.translate_candidates(text)

        if self.config.n_best > 1:
            return candidates
        if return_scores:
            return candidates[0]
        return candidates[0]["text"]

    def translate_candidates(self, text: str) -> List[Dict[str, Any]]:
        """Decode ``text`` and return up to ``n_best`` ranked candidates.

        Each candidate has ``text``, ``tokens`` (without the seed token),
        ``score`` (cumulative log-probability, used for ranking),
        ``normalized_score`` (score per generated token) and ``completed``.
        """
        src_ids = self.tokenizer.encode(text)
        scorer = self.scorer_factory(src_ids)
        initial_step_state = getattr(scorer, "initial_step_state", None)
        max_length = self.config.length_limit(len(src_ids))

        if self.config.strategy == "greedy":
            hypotheses = [greedy_decode(
                scorer,
                bos_id=self.bos_id,
                eos_id=self.eos_id,
                max_length=max_length,
                initial_step_state=initial_step_state,
                min_probability=self.config.min_probability
            )]
        elif self.config.strategy == "beam":
            decoder = BeamSearchDecoder.from_config(
                scorer,
                self.config,
                max_length=max_length,
                bos_id=self.bos_id,
                eos_id=self.eos_id,
                verbose=self.verbose
            )
            hypotheses = decoder.decode(initial_step_state, n_best=self.config.n_best)
        else:
            raise ValueError(f"Unknown decoding strategy: {self.config.strategy}")

        if not hypotheses:
            if self.verbose:
                print(f"[Translator] No admissible hypothesis for: {text}")
            return [{
                "text": "",
                "tokens": [],
                "score": float('-inf'),
                "normalized_score": float('-inf'),
                "completed": False,
            }]

        results = []
        for hyp in hypotheses:
            tokens = list(hyp.state.tokens[1:])
            results.append({
                "text": self.tokenizer.decode(tokens, skip_special_tokens=True),
                "tokens": tokens,
                "score": hyp.log_probability,
                "normalized_score": hyp.normalized_score,
                "completed": hyp.is_completed,
            })
        return results

    def translate_batch(
        self,
        texts: List[str],
        return_scores: bool = False,
        show_progress: bool = False
    ) -> List[Union[str, Dict[str, Any], List[Dict[str, Any]]]]:
        """Translate a list of texts one by one.

        Args:
            texts: List of source texts.
            return_scores: Whether to return translation scores.
            show_progress: Show a tqdm progress bar.

        Returns:
            One result per input, as returned by :meth:`translate`.
        """
        iterator = tqdm(texts, desc="Translating", disable=not show_progress)
        return [self.translate(text, return_scores=return_scores) for text in iterator]

    @classmethod
    def for_transformer(
        cls,
        model,
        tokenizer,
        config: Optional[DecodingConfig] = None,
        device: Optional[torch.device] = None,
        **kwargs
    ) -> "Translator":
        """Translator for a Transformer with encode/decode/output_projection."""
        device = device or torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        model = model.to(device)
        model.eval()

        def factory(src_ids: List[int]) -> TransformerScorer:
            src = torch.tensor([src_ids], dtype=torch.long, device=device)
            return TransformerScorer(model, src)

        return cls(factory, tokenizer, config=config, **kwargs)

    @classmethod
    def for_recurrent(
        cls,
        model,
        tokenizer,
        config: Optional[DecodingConfig] = None,
        device: Optional[torch.device] = None,
        **kwargs
    ) -> "Translator":
        """Translator for a recurrent decoder with encode/step."""
        device = device or torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        model = model.to(device)
        model.eval()

        def factory(src_ids: List[int]) -> RecurrentScorer:
            src = torch.tensor([src_ids], dtype=torch.long, device=device)
            return RecurrentScorer(model, src)

        return cls(factory, tokenizer, config=config, **kwargs)
