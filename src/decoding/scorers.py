"""
Scorers for the decoders.

A scorer is any callable

    scorer(last_token, step_state) -> (distribution, next_step_state)

that returns a probability vector over the vocabulary and the state to use
for the next step of every candidate derived from this call. The search
never looks inside ``step_state``.

Provided adapters:
- TransitionTableScorer: fixed next-token tables (numpy), for tests and demos
- TransformerScorer: encoder-decoder Transformer exposing encode/decode/output_projection
- RecurrentScorer: recurrent decoder exposing encode/step
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import torch
import torch.nn.functional as F


def as_probabilities(distribution) -> List[float]:
    """Convert a scorer distribution to a list of floats.

    Accepts lists, numpy arrays and torch tensors. A leading batch
    dimension of size 1 is dropped.

    Raises:
        ValueError: If the distribution is not one-dimensional.
    """
    if isinstance(distribution, torch.Tensor):
        distribution = distribution.detach().float().cpu().numpy()

    array = np.asarray(distribution, dtype=np.float64)
    if array.ndim == 2 and array.shape[0] == 1:
        array = array[0]
    if array.ndim != 1:
        raise ValueError(
            f"Scorer distribution must be one-dimensional, got shape {array.shape}"
        )
    return array.tolist()


class TransitionTableScorer:
    """Scorer backed by fixed next-token distributions.

    Distributions are looked up by the emitted prefix (seed token excluded),
    falling back to the last emitted token and then to the ``"*"`` entry.
    A prefix without any entry ends the sequence with probability 1.

    Args:
        vocabulary: Token names, indexed by token ID.
        transitions: Maps a space-joined prefix ("" for the start) to a
            ``{token: probability}`` dict. Unlisted tokens get 0.
        bos: Seed token name.
        eos: End-of-sequence token name.
    """

    WILDCARD = "*"

    def __init__(
        self,
        vocabulary: Sequence[str],
        transitions: Dict[str, Dict[str, float]],
        bos: str = "<s>",
        eos: str = "</s>"
    ):
        self.vocabulary = list(vocabulary)
        self.token_to_id = {tok: i for i, tok in enumerate(self.vocabulary)}

        for name in (bos, eos):
            if name not in self.token_to_id:
                raise ValueError(f"Special token '{name}' missing from vocabulary")
        self.bos_id = self.token_to_id[bos]
        self.eos_id = self.token_to_id[eos]

        self.table: Dict[str, np.ndarray] = {}
        for prefix, probs in transitions.items():
            row = np.zeros(len(self.vocabulary), dtype=np.float64)
            for token, prob in probs.items():
                if token not in self.token_to_id:
                    raise ValueError(f"Unknown token '{token}' in transition '{prefix}'")
                row[self.token_to_id[token]] = prob
            self.table[prefix] = row

        self._end_row = np.zeros(len(self.vocabulary), dtype=np.float64)
        self._end_row[self.eos_id] = 1.0

    @property
    def vocab_size(self) -> int:
        return len(self.vocabulary)

    @property
    def initial_step_state(self):
        return None

    def __call__(self, last_token: int, step_state: Optional[Tuple[int, ...]]):
        # step_state is the prefix consumed so far; None before the seed
        prefix = () if step_state is None else step_state + (last_token,)

        names = [self.vocabulary[t] for t in prefix]
        row = self.table.get(" ".join(names))
        if row is None and names:
            row = self.table.get(names[-1])
        if row is None:
            row = self.table.get(self.WILDCARD, self._end_row)

        return row, prefix

    def encode(self, text: str) -> List[int]:
        """Map space-separated token names to IDs, wrapped in BOS/EOS."""
        ids = []
        for name in text.split():
            if name not in self.token_to_id:
                raise ValueError(f"Unknown token '{name}'")
            ids.append(self.token_to_id[name])
        return [self.bos_id] + ids + [self.eos_id]

    def decode(self, ids: Sequence[int], skip_special_tokens: bool = True) -> str:
        special = {self.bos_id, self.eos_id}
        return " ".join(
            self.vocabulary[i] for i in ids
            if not (skip_special_tokens and i in special)
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransitionTableScorer":
        return cls(
            vocabulary=data["vocabulary"],
            transitions=data["transitions"],
            bos=data.get("bos", "<s>"),
            eos=data.get("eos", "</s>")
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TransitionTableScorer":
        """Load a transition table from JSON."""
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


class TransformerScorer:
    """Scorer for an encoder-decoder Transformer.

    The model must provide ``encode(src)``, ``decode(tgt, encoder_output, src)``
    and ``output_projection(hidden)``. The step state is the target prefix
    consumed so far as a (1, t) tensor; the whole prefix is re-decoded on
    every call.

    Args:
        model: Transformer model.
        src: Source token IDs of shape (1, src_len).
    """

    def __init__(self, model, src: torch.Tensor):
        if src.dim() == 1:
            src = src.unsqueeze(0)
        self.model = model
        self.src = src
        self.device = src.device

        self.model.eval()
        with torch.no_grad():
            self.encoder_output = model.encode(src)

    @property
    def initial_step_state(self) -> torch.Tensor:
        return torch.empty((1, 0), dtype=torch.long, device=self.device)

    @torch.no_grad()
    def __call__(self, last_token: int, step_state: torch.Tensor):
        token = torch.tensor([[last_token]], dtype=torch.long, device=self.device)
        prefix = torch.cat([step_state, token], dim=1)

        decoder_output = self.model.decode(prefix, self.encoder_output, self.src)

        # Logits for last position: (1, vocab_size)
        logits = self.model.output_projection(decoder_output[:, -1, :])
        probs = F.softmax(logits, dim=-1).squeeze(0)

        return probs, prefix


class RecurrentScorer:
    """Scorer for a recurrent attention decoder.

    The model must provide ``encode(src)`` and
    ``step(token, hidden, encoder_output) -> (logits, hidden)``; an optional
    ``initial_hidden(encoder_output)`` supplies the first hidden state.
    The step state is the hidden tensor.

    Args:
        model: Encoder-decoder model.
        src: Source token IDs of shape (1, src_len).
    """

    def __init__(self, model, src: torch.Tensor):
        if src.dim() == 1:
            src = src.unsqueeze(0)
        self.model = model
        self.device = src.device

        self.model.eval()
        with torch.no_grad():
            self.encoder_output = model.encode(src)
            if hasattr(model, "initial_hidden"):
                self._initial_hidden = model.initial_hidden(self.encoder_output)
            else:
                self._initial_hidden = None

    @property
    def initial_step_state(self):
        return self._initial_hidden

    @torch.no_grad()
    def __call__(self, last_token: int, step_state):
        token = torch.tensor([last_token], dtype=torch.long, device=self.device)
        logits, hidden = self.model.step(token, step_state, self.encoder_output)
        probs = F.softmax(logits, dim=-1).reshape(-1)
        return probs, hidden
