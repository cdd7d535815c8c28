"""
Prompt Builder

One pure function per task. Each returns the message list for the chat
completion: a system directive holding the rules, then a user directive
holding the task input and the retrieved document context.

Every template forbids answers from outside the supplied context and names
the exact sentence to reply with when the topic is absent.
"""

from course_ai.models.chat_session import ExamType

GENERAL_ABSENT_REPLY = "This topic is not covered in the document."
QUIZ_ABSENT_REPLY = "This document does not contain enough content to generate a quiz."
EXAM_ABSENT_REPLY = "No lecture or topic titles were found in the document."
ASSISTANT_ABSENT_REPLY = "I don't have knowledge about that."

QUIZ_MARKER = "QUIZ_JSON:"

# Lecture ranges covered by each exam
EXAM_LECTURE_RANGES = {
    ExamType.MIDTERM: (1, 18),
    ExamType.FINAL_TERM: (19, 45),
}


def _messages(system: str, user: str) -> list[dict]:
    return [
        {"role": "system", "content": system.strip()},
        {"role": "user", "content": user.strip()},
    ]


def general_chat_prompt(question: str, context: str) -> list[dict]:
    system = f"""You are an academic AI tutor and exam assistant for university students.

STRICT RULES:
- Use ONLY the provided Document Context
- Do NOT use external knowledge or assumptions
- Be concise and student-friendly
- Format answers clearly

If the topic is absent:
- Respond exactly: "{GENERAL_ABSENT_REPLY}"
"""
    user = f"""Question: {question}

Document Context:
{context}"""
    return _messages(system, user)


def assistant_prompt(question: str, context: str) -> list[dict]:
    system = f"""You are a student support agent helping university students find answers to their questions in the course document.

STRICT RULES:
- Use ONLY the provided Document Context
- Do NOT use external knowledge or assumptions
- Be concise and student-friendly
- Format answers clearly

If the answer is absent:
- Respond exactly: "{ASSISTANT_ABSENT_REPLY}"
"""
    user = f"""Question: {question}

Document Context:
{context}"""
    return _messages(system, user)


def quiz_prompt(context: str, question_count: int = 5) -> list[dict]:
    system = f"""You are an academic exam question generator.

STRICT RULES:
- Generate MCQs ONLY from the provided context
- Do NOT use external knowledge
- Randomly select ONE topic per quiz generation
- Do NOT restate the topic name verbatim as a question stem
- Each question MUST be clearly answerable from the context
- Do NOT invent facts or numbers

If the context has no usable topic:
- Respond exactly: "{QUIZ_ABSENT_REPLY}"

OUTPUT FORMAT:
- Start with exactly: {QUIZ_MARKER}
- Then output a valid JSON array
- Each object must have:
  - "question" (string)
  - "options" (array of exactly 4 strings)
  - "correctAnswer" (must match one option exactly)
  - "reason" (must be supported by context)

EXAMPLE:
{QUIZ_MARKER} [{{"question":"...","options":["A","B","C","D"],"correctAnswer":"A","reason":"..."}}]
"""
    user = f"""Task: Generate exactly {question_count} multiple-choice questions (MCQs)

Instructions:
1. Identify distinct topics in the context
2. Randomly choose ONE topic
3. Generate all {question_count} MCQs from that single topic
4. Keep difficulty at undergraduate level
5. Ensure each MCQ is clearly answerable from the context

Context:
{context}"""
    return _messages(system, user)


def build_analysis_query(wrong_answers: list) -> str:
    """Numbered listing of the wrong answers, used both as search query and prompt input."""
    lines = ["Analyze these incorrect answers and identify related concepts:"]
    for idx, answer in enumerate(wrong_answers, start=1):
        if not isinstance(answer, dict):
            lines.append(f"{idx}. {answer}")
            continue
        question = answer.get("question", "")
        selected = answer.get("selected") or answer.get("correctAnswer") or ""
        correct = answer.get("correctAnswer") or answer.get("correct") or ""
        lines.append(
            f"{idx}. Question: {question}\n"
            f"   Your Answer: {selected}\n"
            f"   Correct Answer: {correct}"
        )
    return "\n\n".join(lines)


def weak_topic_analysis_prompt(analysis_query: str, context: str) -> list[dict]:
    system = """You are an academic tutor analyzing student mistakes.

RULES:
- Use ONLY the provided document context
- Identify weak topics based on incorrect answers
- Explain why the student is weak in those topics
- Suggest what to study next from the document
- Do NOT generate quiz questions
- Be clear and student-friendly

FORMAT:
1. **Weak Topics Identified:**
   - Topic 1
   - Topic 2

2. **Why You're Weak:**
   - Explanation

3. **What to Study:**
   - Specific sections/concepts from the document
"""
    user = f"""Incorrect Answers:
{analysis_query}

Document Context:
{context}

Please analyze my weak areas and suggest what to study."""
    return _messages(system, user)


def teach_topic_prompt(topic: str, context: str) -> list[dict]:
    system = f"""You are a friendly teacher explaining concepts to students.

RULES:
- Use ONLY the provided document context
- Explain in simple, student-friendly language
- Include examples ONLY if they are in the document
- Use bullet points and lists for clarity

If the topic is absent:
- Respond exactly: "{GENERAL_ABSENT_REPLY}"

FORMAT:
1. **Simple Explanation:**
   - Clear overview

2. **Key Points:**
   - Important details

3. **Examples:** (if available in document)
   - Relevant examples

4. **Summary:**
   - Brief recap
"""
    user = f"""Topic: {topic}

Document Context:
{context}

Please explain this topic in a simple way."""
    return _messages(system, user)


def _exam_scope(exam_type: ExamType | None) -> str:
    if exam_type is None:
        return "all lectures, lessons and topics"
    first, last = EXAM_LECTURE_RANGES[exam_type]
    return f"lectures, lessons and topics {first} to {last}"


def exam_stage_prompt(exam_type: ExamType | None, context: str) -> list[dict]:
    scope = _exam_scope(exam_type)
    exam_name = exam_type.value if exam_type else "UNSPECIFIED"
    system = f"""You are an exam preparation assistant. You list the lecture, lesson and topic titles a student must prepare for an exam.

RULES:
- The MIDTERM covers lectures 1 to 18; the FINAL_TERM covers lectures 19 to 45
- For this request list {scope} that appear in the document
- Only use titles that appear in the provided document
- Do not add or assume topics that are not explicitly mentioned
- Preserve the original numbering when it is available

If no titles are found:
- Respond exactly: "{EXAM_ABSENT_REPLY}"
"""
    user = f"""Exam Type:
{exam_name}

Output Format:
A numbered list of the lecture or topic titles to prepare, in document order.

Document:
{context}"""
    return _messages(system, user)
