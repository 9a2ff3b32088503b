# pluto/services/ai_service.py
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from flask import Flask
from openai import OpenAI

FALLBACK_TEXT = "I'm sorry, I couldn't process that request."
ERROR_TEXT = "Error communicating with the AI. Please try again."

LOCATION_ROUTE = 'location'
GENERAL_ROUTE = 'general'

# 주변 장소 검색이 필요한 질문을 판별하는 키워드
LOCATION_KEYWORDS = (
    'vet', 'veterinarian', 'veterinary', 'clinic', 'hospital', 'nearby', 'near me',
    'store', 'shop', 'daycare', 'grooming', 'groomer', 'boarding', 'pharmacy',
    'emergency', 'park',
)


class QueryRouter(ABC):
    """질문을 어떤 모델 프로필로 보낼지 결정하는 인터페이스."""

    @abstractmethod
    def route(self, prompt: str) -> str:
        """LOCATION_ROUTE 또는 GENERAL_ROUTE 를 반환합니다."""


class KeywordQueryRouter(QueryRouter):
    """키워드(단어 경계, 복수형 허용) 기반 라우터."""

    def __init__(self, keywords=LOCATION_KEYWORDS):
        self.patterns = [re.compile(rf"\b{re.escape(keyword)}(s|es)?\b", re.IGNORECASE) for keyword in keywords]

    def route(self, prompt: str) -> str:
        if any(pattern.search(prompt or '') for pattern in self.patterns):
            return LOCATION_ROUTE
        return GENERAL_ROUTE


def build_pet_context(pet: Optional[Dict[str, Any]], records: Dict[str, Any]) -> str:
    """AI 에게 전달할 반려동물 기록 요약 문자열을 만듭니다."""
    pet = pet or {}
    timeline = "\n".join(
        f"- {entry.get('date')}: {entry.get('type')} - {entry.get('title')} ({entry.get('notes') or ''})"
        for entry in records.get('timeline', [])
    )
    documents = "\n".join(
        f"- {doc.get('name')} ({doc.get('type')}) dated {doc.get('date')}"
        for doc in records.get('documents', [])
    )
    reminders = "\n".join(
        f"- {reminder.get('title')} scheduled for {reminder.get('date')} (Type: {reminder.get('type')})"
        for reminder in records.get('reminders', [])
    )
    return (
        f"Pet Name: {pet.get('name', '')}\n"
        f"Species: {pet.get('species', '')}\n"
        f"Breed: {pet.get('breed', '')}\n"
        f"DOB: {pet.get('dateOfBirth', '')}\n"
        f"Gender: {pet.get('gender', '')}\n\n"
        f"Timeline Entries:\n{timeline}\n\n"
        f"Documents:\n{documents}\n\n"
        f"Reminders:\n{reminders}"
    )


def build_system_instruction(pet_name: str) -> str:
    return (
        f"You are Pluto AI, a helpful assistant for pet owner {pet_name}.\n"
        "You have access to the pet's records provided in the context.\n"
        "Your goal is to answer questions about the pet's history, upcoming tasks, and documents.\n\n"
        "STRICT RULES:\n"
        "1. Only use the provided data.\n"
        "2. DO NOT provide medical advice, diagnosis, or treatments.\n"
        "3. If asked about nearby vets or pet services, use your web search tool to find relevant locations if possible.\n"
        "4. Keep answers concise, warm, and professional."
    )


class AIService:
    """
    OpenAI API 연동을 담당하는 서비스 클래스.
    반려동물 기록을 문맥으로 붙여 질문에 답하고, 주변 장소 질문은 웹 검색 모델로 보냅니다.
    """

    def __init__(self, client: Optional[OpenAI] = None, router: Optional[QueryRouter] = None,
                 general_model: str = 'gpt-4o', location_model: str = 'gpt-4o-search-preview'):
        """
        실제 클라이언트는 init_app 메서드를 통해 설정됩니다 (테스트에서는 직접 주입).
        """
        self.client = client
        self.router = router or KeywordQueryRouter()
        self.general_model = general_model
        self.location_model = location_model

    def init_app(self, app: Flask):
        """
        Flask 앱 초기화 과정에서 호출되어 OpenAI 클라이언트를 설정합니다.

        :param app: Flask 애플리케이션 객체
        """
        api_key = app.config.get('OPENAI_API_KEY')
        if not api_key:
            raise ValueError("OPENAI_API_KEY 설정이 .env 파일에 필요합니다.")

        if self.client is None:
            self.client = OpenAI(api_key=api_key)
        self.general_model = app.config.get('AI_GENERAL_MODEL', self.general_model)
        self.location_model = app.config.get('AI_LOCATION_MODEL', self.location_model)
        logging.info("AIService: OpenAI API 서비스가 성공적으로 초기화되었습니다.")

    def ask(self, prompt: str, pet: Optional[Dict[str, Any]], records: Dict[str, Any],
            location: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
        """
        질문에 답하고 {text, sources} 를 반환합니다.
        공급자 오류가 나도 예외를 던지지 않고 고정된 안내 문구를 돌려줍니다.

        :param prompt: 사용자 질문
        :param pet: 반려동물 프로필 dict
        :param records: 케어 일지/문서/예정 케어
        :param location: {latitude, longitude} (선택)
        """
        if not self.client:
            raise RuntimeError("AIService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        route = self.router.route(prompt)
        context = build_pet_context(pet, records)
        user_message = f"Context: {context}\n\nUser Question: {prompt}"

        request: Dict[str, Any] = {
            "messages": [
                {"role": "system", "content": build_system_instruction((pet or {}).get('name', ''))},
                {"role": "user", "content": user_message},
            ],
        }
        if route == LOCATION_ROUTE:
            request["model"] = self.location_model
            request["web_search_options"] = {"search_context_size": "medium"}
            if location:
                request["messages"][1]["content"] += (
                    f"\n\nUser location: latitude {location.get('latitude')}, "
                    f"longitude {location.get('longitude')}"
                )
        else:
            request["model"] = self.general_model

        try:
            response = self.client.chat.completions.create(**request)
            message = response.choices[0].message
            return {
                "text": message.content or FALLBACK_TEXT,
                "sources": self._extract_sources(message),
            }
        except Exception as e:
            logging.error(f"OpenAI 응답 생성 실패 (route: {route}): {e}", exc_info=True)
            return {"text": ERROR_TEXT, "sources": []}

    @staticmethod
    def _extract_sources(message) -> List[Dict[str, str]]:
        """url_citation 주석에서 출처를 뽑습니다. URI 가 없거나 중복된 출처는 제외합니다."""
        sources, seen = [], set()
        for annotation in getattr(message, 'annotations', None) or []:
            if getattr(annotation, 'type', None) != 'url_citation':
                continue
            citation = annotation.url_citation
            uri = getattr(citation, 'url', None)
            if not uri or uri in seen:
                continue
            seen.add(uri)
            sources.append({"title": getattr(citation, 'title', None) or uri, "uri": uri})
        return sources
