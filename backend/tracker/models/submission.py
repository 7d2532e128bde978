from __future__ import annotations

from enum import Enum


class SubmissionStatus(str, Enum):
    """
    投稿生命周期状态（闭集，共 5 个）。

    中文注释:
    - 数据库存储为大写字符串；服务层 normalize 后再写入。
    - 流转是开放的：任意状态都可以切换到任意状态（见 TRANSITIONS）。
    """

    EM_AVALIACAO = "EM_AVALIACAO"  # under review
    APROVADO = "APROVADO"  # approved
    REJEITADO = "REJEITADO"  # rejected
    REVISAO_SOLICITADA = "REVISAO_SOLICITADA"  # revision requested
    SUBMETIDO_NOVAMENTE = "SUBMETIDO_NOVAMENTE"  # resubmitted

    @classmethod
    def initial(cls) -> "SubmissionStatus":
        return cls.EM_AVALIACAO

    @classmethod
    def allowed_next(cls, current: str) -> set[str]:
        """
        Statuses reachable from `current`.

        The table is explicit so a stricter policy only has to edit
        TRANSITIONS; today every edge is allowed, self-loops included.
        """
        c = normalize_status(current)
        if c is None:
            return set()
        return {s.value for s in TRANSITIONS[cls(c)]}

    @classmethod
    def can_transition(cls, current: str | None, target: str) -> bool:
        t = normalize_status(target)
        if t is None:
            return False
        # 无历史状态（新建）时只要目标合法即可
        if normalize_status(current) is None:
            return True
        return t in cls.allowed_next(current or "")


TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    status: frozenset(SubmissionStatus) for status in SubmissionStatus
}

STATUS_LABELS: dict[str, str] = {
    SubmissionStatus.EM_AVALIACAO.value: "Em Avaliação",
    SubmissionStatus.APROVADO.value: "Aprovado",
    SubmissionStatus.REJEITADO.value: "Rejeitado",
    SubmissionStatus.REVISAO_SOLICITADA.value: "Revisão Solicitada",
    SubmissionStatus.SUBMETIDO_NOVAMENTE.value: "Submetido Novamente",
}


def normalize_status(value: str | SubmissionStatus | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, SubmissionStatus):
        return value.value
    v = str(value).strip().upper().replace(" ", "_").replace("-", "_")
    if not v:
        return None
    try:
        return SubmissionStatus(v).value
    except ValueError:
        return None
