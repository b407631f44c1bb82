"""User-facing strings. Vietnamese is the default catalog."""

MESSAGES = {
    "vi": {
        "page_title": "Trợ Lý Toán Học THCS",
        "subtitle": "Giải bài tập và tạo đề tương tự cho học sinh lớp 6 - 9",
        "sidebar_title": "Cấu hình",
        "api_key_label": "Gemini API Key",
        "api_key_missing": "Vui lòng nhập Gemini API Key.",
        "language_label": "Ngôn ngữ",
        "error_prefix": "Lỗi!",
        "panel_upload": "1. Tải Lên Đề Bài",
        "panel_content": "2. Nội Dung Đề Bài",
        "panel_generate": "3. Tạo Đề Bài Tương Tự",
        "panel_solutions": "4. Lời Giải Cho Đề Tương Tự",
        "upload_label": "Chọn ảnh đề bài",
        "upload_help": "Hỗ trợ file ảnh (PNG, JPG, WEBP)",
        "preview_caption": "Xem trước đề bài",
        "solving_original": "AI đang phân tích và giải bài...",
        "extracted_heading": "Đề bài trích xuất từ ảnh:",
        "show_solution": "👁 Xem lời giải chi tiết",
        "hide_solution": "🙈 Ẩn lời giải",
        "steps_heading": "Các bước giải:",
        "figure_heading": "Hình vẽ minh họa:",
        "content_placeholder": "Nội dung đề bài và lời giải sẽ xuất hiện ở đây sau khi bạn tải ảnh lên.",
        "generating": "AI đang soạn {count} đề bài mới...",
        "generated_count": "Đã tạo **{count}** đề bài.",
        "regenerate": "Tạo lại bộ khác",
        "problem_label": "Bài {number}",
        "detected_count": "AI phát hiện **{count}** bài tập trong ảnh gốc. Bạn muốn tạo bao nhiêu bài tương tự?",
        "count_label": "Số lượng:",
        "generate_button": "➕ Tạo Đề Tương Tự",
        "solve_original_first": "Vui lòng tải lên và giải đề bài gốc trước.",
        "choose_problem": "Chọn bài tập bạn muốn xem lời giải:",
        "problem_heading": "Bài toán số {number}",
        "solve_button": "Giải bài này",
        "solving_button": "Đang giải...",
        "show_short": "👁 Xem giải",
        "hide_short": "🙈 Ẩn giải",
        "solutions_placeholder": "Hãy tạo đề bài tương tự ở mục 3 trước khi xem lời giải tại đây.",
        "download_worksheet": "⬇️ Tải phiếu bài tập (PDF)",
        "worksheet_title": "Phiếu bài tập tương tự",
        "worksheet_original": "Bài toán gốc",
        "worksheet_workspace": "Phần làm bài",
        "worksheet_answer_key": "Đáp án và gợi ý",
        "worksheet_unsolved": "(chưa có lời giải)",
        "error_solve_original": "Đã xảy ra lỗi khi giải bài toán. Vui lòng thử lại.",
        "error_unsupported_image": "File ảnh không hợp lệ. Vui lòng chọn ảnh PNG, JPG hoặc WEBP.",
        "error_original_required": "Cần phải giải bài toán gốc trước khi tạo bài tương tự.",
        "error_count_range": "Vui lòng nhập số lượng bài toán từ 1 đến {maximum}.",
        "error_generate": "Đã xảy ra lỗi khi tạo bài toán tương tự.",
        "error_solve_similar": "Đã xảy ra lỗi khi giải bài toán số {number}.",
    },
    "en": {
        "page_title": "Middle School Math Assistant",
        "subtitle": "Solve exercises and create similar practice problems for grades 6 - 9",
        "sidebar_title": "Configuration",
        "api_key_label": "Gemini API Key",
        "api_key_missing": "Please provide a Gemini API Key.",
        "language_label": "Language",
        "error_prefix": "Error!",
        "panel_upload": "1. Upload the Problem",
        "panel_content": "2. Problem Content",
        "panel_generate": "3. Create Similar Problems",
        "panel_solutions": "4. Solutions for Similar Problems",
        "upload_label": "Choose a problem image",
        "upload_help": "Image files supported (PNG, JPG, WEBP)",
        "preview_caption": "Problem preview",
        "solving_original": "AI is analysing and solving the problem...",
        "extracted_heading": "Problem extracted from the image:",
        "show_solution": "👁 Show detailed solution",
        "hide_solution": "🙈 Hide solution",
        "steps_heading": "Solution steps:",
        "figure_heading": "Illustration:",
        "content_placeholder": "The problem and its solution will appear here once you upload an image.",
        "generating": "AI is writing {count} new problems...",
        "generated_count": "Created **{count}** problems.",
        "regenerate": "Create another set",
        "problem_label": "Problem {number}",
        "detected_count": "AI detected **{count}** problem(s) in the original image. How many similar problems do you want?",
        "count_label": "Quantity:",
        "generate_button": "➕ Create Similar Problems",
        "solve_original_first": "Please upload and solve the original problem first.",
        "choose_problem": "Pick the problems you want to see solved:",
        "problem_heading": "Problem #{number}",
        "solve_button": "Solve this one",
        "solving_button": "Solving...",
        "show_short": "👁 Show",
        "hide_short": "🙈 Hide",
        "solutions_placeholder": "Create similar problems in section 3 before viewing solutions here.",
        "download_worksheet": "⬇️ Download worksheet (PDF)",
        "worksheet_title": "Similar Problems Worksheet",
        "worksheet_original": "Original problem",
        "worksheet_workspace": "Workspace",
        "worksheet_answer_key": "Answer Key & Hints",
        "worksheet_unsolved": "(not solved yet)",
        "error_solve_original": "Something went wrong while solving the problem. Please try again.",
        "error_unsupported_image": "Invalid image file. Please choose a PNG, JPG or WEBP image.",
        "error_original_required": "The original problem must be solved before creating similar ones.",
        "error_count_range": "Please enter a number of problems between 1 and {maximum}.",
        "error_generate": "Something went wrong while creating similar problems.",
        "error_solve_similar": "Something went wrong while solving problem #{number}.",
    },
}


def text(language: str, key: str, **kwargs) -> str:
    catalog = MESSAGES.get(language, MESSAGES["vi"])
    message = catalog.get(key, MESSAGES["vi"][key])
    return message.format(**kwargs) if kwargs else message
