# core/embedder.py
from functools import lru_cache
from typing import List, Sequence
import numpy as np
from sentence_transformers import SentenceTransformer
from config.settings import settings
from util.timing import timed
import logging

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _load_model(name: str) -> SentenceTransformer:
    """
    Lazy-load the sentence embedding model once per process.

    all-MiniLM-L6-v2 mean-pools token states; CPU is plenty for one document.
    """
    with timed(logger, "embed.model.load", model=name):
        model = SentenceTransformer(name, device="cpu")
    return model


def embed_texts(
    texts: Sequence[str], batch_size: int | None = None, model_name: str | None = None
) -> List[List[float]]:
    """
    Encode `texts` into L2-normalized vectors, one list of floats per text.
    Used while building the artifact only; queries are never embedded at runtime.
    """
    if not texts:
        return []
    model = _load_model(model_name or settings.EMBEDDING_MODEL_NAME)
    batch = batch_size or settings.EMBED_BATCH_SIZE
    with timed(logger, "embed.encode", n=len(texts), batch=batch) as stats:
        vecs = model.encode(
            list(texts),
            batch_size=batch,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        emb = np.asarray(vecs, dtype=np.float32)
        stats["d"] = emb.shape[1] if emb.ndim == 2 else 0
    return emb.tolist()
