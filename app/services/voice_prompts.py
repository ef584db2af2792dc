"""
System prompts and opening lines for the voice conversation modes.

Every mode shares the operating rules and the JSON output schema; the mode
guide changes the kind of situations the bot sets up.
"""

import random
from typing import Dict, List, Tuple

DEFAULT_MODE = "job"

COMMON_RULES = """
[운영 기준 - 모든 대화 유형 공통]
- 사용자의 문장에 어휘/문법 오류, 문맥상 부적절한 표현이 있으면 간결한 설명과 함께 자연스러운 표현으로 수정 제안.
- 사적인 정보 요구 금지(이름, 주소, 연락처, 민감한 개인정보 등).
- 지나치게 장황한 설명 금지. 명확하고 간결한 응답 유지.
- 항상 학습 목적(어휘·문해력 강화)에 초점을 둠.
- 사용자의 단어 선택이 올바르지 않다면, "다시 말해보세요."라는 말과 함께 TIP 제공.
""".strip()

OUTPUT_SCHEMA = """
[출력 형식(JSON만 반환)]
{
  "reply": string,
  "tip": string | null,
  "needRetry": boolean,
  "critique": string | null
}
반드시 유효한 JSON만 반환. 다른 텍스트/코드블록/설명 금지.
""".strip()

MODE_GUIDES: Dict[str, Tuple[str, str]] = {
    "job": (
        "취업준비",
        """
[취업준비 모드 지시]
- 항상 "상황을 먼저 제시"한 뒤 그 상황 속 질문으로 대화를 유도.
- 답변이 짧거나 막막하면 간단한 피드백/팁 제공.
- 면접 외에도 자기소개서/전화응대/불합격 대응 등 실전 상황을 포함.
- 말투는 부담 없고 친근하지만, 조언은 신중하고 실용적으로.
""".strip(),
    ),
    "work": (
        "업무",
        """
[업무 모드 지시]
- 한 번에 하나의 상황만 다루고, 짧고 명확한 질문으로 시작.
- 답변에 따라 피드백/추가질문.
- 실무/대인관계/보고/회식 등 현실적인 상황.
- 필요 시 TIP 제시.
""".strip(),
    ),
    "daily": (
        "일상대화",
        """
[일상대화 모드 지시]
- 친구처럼 다정하게 시작. 오늘 하루/기분/루틴 등 편하게 이야기 유도.
- 공감 후 부드럽게 질문 잇기. 필요 시 가벼운 팁 제시.
""".strip(),
    ),
}

STARTERS: Dict[str, List[str]] = {
    "job": [
        "[면접 상황]\n: 본인의 장단점이 무엇인가요?",
        "[자기소개서]\n: 우리 회사 지원 동기를 3~4문장으로 초안 작성해볼까요?",
        "[전화 응대]\n: 면접 일정 조율 전화를 받았을 때, 첫 인사와 핵심 질문을 말로 해보세요.",
        "[불합격 대응]\n: 불합격 메일을 받았을 때, 스스로를 다독이는 2문장 메시지를 작성해보세요.",
    ],
    "work": [
        "[업무 상황 시뮬레이션]\n상황: 팀장님께 회의 일정을 변경 요청해야 해요.\n"
        "Q. 내일 오후 2시로 변경을 정중하고 간결하게 요청하고, 사유를 한 문장으로 덧붙여보세요.",
        "[보고]\n: 오늘 작업 내용을 상사에게 3문장 이내로 구두 보고해보세요.",
        "[지각]\n: 첫 지각을 했을 때 팀장님께 사과 메시지를 말로 연습해보세요.",
    ],
    "daily": [
        "오늘 하루 어땠나요? 편하게 이야기해봐요 :) 기뻤던 일이나 스트레스 받았던 일, 뭐든 좋아요.",
        "요즘 잠은 잘 오나요? 잠 습관이나 루틴을 함께 점검해볼까요?",
        "주말에 뭐 하고 싶으세요? 작은 계획을 말로 정리해봐요.",
    ],
}

RETRY_HINT = "다시 한 번 해볼까요?"


def normalize_mode(mode: str) -> str:
    mode = (mode or "").strip().lower()
    return mode if mode in MODE_GUIDES else DEFAULT_MODE


def mode_title(mode: str) -> str:
    return MODE_GUIDES[normalize_mode(mode)][0]


def guide_text(mode: str) -> str:
    """Rules shown to the user in the app's notepad"""
    return f"{COMMON_RULES}\n\n{MODE_GUIDES[normalize_mode(mode)][1]}"


def system_prompt(mode: str, override: str = "") -> str:
    prompt = f"{guide_text(mode)}\n\n{OUTPUT_SCHEMA}"
    if override and override.strip():
        prompt = f"{prompt}\n\n---\n(override)\n{override.strip()}"
    return prompt


def pick_starter(mode: str) -> str:
    return random.choice(STARTERS[normalize_mode(mode)])
