class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    INDEX_STATUS = V1 + "/index/status"
    INDEX_RELOAD = V1 + "/index/reload"
    TOPICS = V1 + "/topics"
    SEARCH = V1 + "/search"
    CONTEXT = V1 + "/context"
    MODEL_INIT = V1 + "/model/init"
    CHAT = V1 + "/chat"
    QUIZ = V1 + "/quiz"
    QUIZ_SCORE = QUIZ + "/score"
    FLASHCARDS = V1 + "/flashcards"
    FLASHCARDS_REVIEW = FLASHCARDS + "/review"
    FLASHCARDS_MERGE = FLASHCARDS + "/merge"
    STATIC = "/static"
