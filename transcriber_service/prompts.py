from __future__ import annotations

PREDEFINED_PROMPTS: dict[str, str] = {
    "summarize": (
        "Forneça um resumo conciso da seguinte transcrição em 3-5 frases. "
        "Foque nos pontos principais e aprendizados-chave."
    ),
    "extract_key_points": (
        "Extraia os 5-7 pontos-chave mais importantes desta transcrição. "
        "Liste-os como tópicos."
    ),
    "generate_meeting_notes": (
        "Converta esta transcrição em notas profissionais de reunião com seções para: "
        "Participantes, Pauta, Pontos Discutidos, Itens de Ação e Próximas Etapas."
    ),
    "create_todo": (
        "Com base nesta transcrição, crie uma lista de tarefas priorizada com itens "
        "específicos e acionáveis. Marque cada item com nível de prioridade (Alto/Médio/Baixo)."
    ),
    "extract_decisions": (
        "Identifique todas as decisões tomadas durante esta conversa/reunião. "
        "Liste cada decisão com quem a tomou e qual era o contexto."
    ),
    "create_questions": (
        "Formule 5-7 perguntas importantes que esta transcrição levanta ou que ainda "
        "precisam ser respondidas baseado no conteúdo."
    ),
    "professional_summary": (
        "Resuma esta transcrição de forma profissional e executiva, como se fosse um "
        "relatório para um diretor. Máximo 200 palavras."
    ),
}


def build_transform_prompt(instruction: str, transcript: str) -> str:
    return f"""\
{instruction.strip()}

---

Transcription:
{transcript}"""
